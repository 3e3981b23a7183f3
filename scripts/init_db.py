"""Create the care_office schema and the local storage buckets.

Usage: ``APP_ENV=production python scripts/init_db.py [--skip-storage]``
"""

from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.care_office.care_office.core.constants import HOUSE_BUCKET, PARTICIPANT_BUCKET, STAFF_BUCKET
from src.care_office.care_office.database.bootstrap import apply_schema, list_tables

BUCKETS = (STAFF_BUCKET, PARTICIPANT_BUCKET, HOUSE_BUCKET)


def _storage_root(settings) -> Path:
    root = Path(getattr(settings, "STORAGE_ROOT", "storage"))
    return root if root.is_absolute() else REPO_ROOT / root


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--skip-storage", action="store_true", help="only apply schema.sql")
    args = parser.parse_args(argv)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    db_config = dict(settings.DB_CONFIG)

    applied = apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    tables = list_tables(db_config)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    print(f"[{settings_module}] schema.sql: {applied} statement(s) -> {target} (tables={len(tables)})")

    if args.skip_storage:
        return
    root = _storage_root(settings)
    for bucket in BUCKETS:
        (root / bucket).mkdir(parents=True, exist_ok=True)
    print(f"[{settings_module}] storage buckets ready under {root}: {', '.join(BUCKETS)}")


if __name__ == "__main__":
    main()
