import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "care_office"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "care_office"),
}

STORAGE_ROOT = os.getenv("STORAGE_ROOT", "/var/lib/care_office/storage")
STORAGE_PUBLIC_URL = os.getenv("STORAGE_PUBLIC_URL", "/files")

# Idle page sessions (and their staged uploads) are evicted after this many seconds.
PAGE_IDLE_TTL = int(os.getenv("PAGE_IDLE_TTL", "7200"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
