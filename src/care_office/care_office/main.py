from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .activity.controller import register as register_activity
from .common.http import register_error_handlers
from .container import build_container
from .core.constants import PAGE_IDLE_TTL_SECONDS
from .database.bootstrap import apply_schema, list_tables
from .pages.controller import register as register_pages
from .requests.controller import register as register_requests
from .roster.controller import register as register_roster
from .store.controller import register as register_files

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]


def create_app(*, container=None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["STORAGE_PUBLIC_URL"] = getattr(settings, "STORAGE_PUBLIC_URL", "/files")

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

        storage_root = Path(getattr(settings, "STORAGE_ROOT", "storage"))
        if not storage_root.is_absolute():
            storage_root = REPO_ROOT / storage_root
        container = build_container(
            db_config=db_config,
            storage_root=storage_root,
            public_url=app.config["STORAGE_PUBLIC_URL"],
            page_idle_ttl=getattr(settings, "PAGE_IDLE_TTL", PAGE_IDLE_TTL_SECONDS),
        )

    register_error_handlers(app)
    register_pages(app, container)
    register_roster(app, container)
    register_requests(app, container)
    register_activity(app, container)
    register_files(app, container)

    return app
