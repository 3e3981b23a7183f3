import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "care_office"),
}

# Uploaded documents and profile photos: <STORAGE_ROOT>/<bucket>/<path>
STORAGE_ROOT = os.getenv("STORAGE_ROOT", "storage")
STORAGE_PUBLIC_URL = os.getenv("STORAGE_PUBLIC_URL", "/files")

# Idle page sessions (and their staged uploads) are evicted after this many seconds.
PAGE_IDLE_TTL = int(os.getenv("PAGE_IDLE_TTL", "7200"))

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
