from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..common.datetime_utils import to_iso
from .connection import DatabaseConnection

# Columns stored as JSON text.
JSON_COLUMNS = frozenset({"tags", "metadata"})


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Connection + cursor for one store call; commits on success, rolls back on error."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return normalize_row(row) if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    return [normalize_row(r) for r in cur.fetchall() or []]


def normalize_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Connector row -> plain record.

    mysql-connector hands TIME back as ``timedelta`` (wrapping past 24h) and
    DECIMAL as ``Decimal``; records carry ``'HH:MM:SS'`` and ``float``.
    """
    out: Dict[str, Any] = {}
    for key, value in row.items():
        if isinstance(value, timedelta):
            value = to_iso(value)
        elif isinstance(value, Decimal):
            value = float(value)
        elif key in JSON_COLUMNS and isinstance(value, (str, bytes)):
            value = json.loads(value) if value else None
        out[key] = value
    return out
