from __future__ import annotations

import json
import re
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Mapping, Optional, Sequence

import mysql.connector

from ..core.exceptions import RemoteStoreError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .repository import RecordStore

TABLES = frozenset(
    {
        "staff",
        "staff_compliance",
        "staff_training",
        "staff_documents",
        "staff_shifts",
        "participants",
        "participant_goals",
        "participant_goal_progress",
        "participant_documents",
        "participant_medications",
        "participant_contacts",
        "participant_funding",
        "participant_providers",
        "shift_notes",
        "houses",
        "house_participants",
        "house_staff_assignments",
        "house_calendar_events",
        "house_files",
        "house_checklists",
        "house_checklist_items",
        "house_forms",
        "house_form_assignments",
        "house_resources",
        "leave_requests",
        "timesheets",
        "notifications",
        "activity_log",
    }
)

_IDENT_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


def _ident(name: str) -> str:
    if not _IDENT_RE.match(name or ""):
        raise RemoteStoreError(f"Invalid column name: {name!r}", code="42703")
    return f"`{name}`"


def _encode(value: Any) -> Any:
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return value


@contextmanager
def _translate_errors():
    try:
        yield
    except mysql.connector.Error as e:
        raise RemoteStoreError(str(e.msg or e), code=str(e.errno) if e.errno else e.sqlstate) from e


class MySQLRecordStore(RecordStore):
    def __init__(self, conn_factory: DatabaseConnection, *, id_factory: Callable[[], str] = lambda: str(uuid.uuid4())):
        self._conn_factory = conn_factory
        self._id_factory = id_factory

    @staticmethod
    def _table(table: str) -> str:
        if table not in TABLES:
            raise RemoteStoreError(f"Unknown table: {table!r}", code="42P01")
        return f"`{table}`"

    def create(self, table: str, record: Mapping[str, Any]) -> dict:
        row = dict(record)
        row.setdefault("id", self._id_factory())
        cols = ", ".join(_ident(c) for c in row)
        marks = ", ".join(["%s"] * len(row))

        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO {self._table(table)} ({cols}) VALUES ({marks})",
                tuple(_encode(v) for v in row.values()),
            )
        return row

    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> None:
        if not patch:
            return
        assignments = ", ".join(f"{_ident(c)}=%s" for c in patch)

        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE {self._table(table)} SET {assignments} WHERE `id`=%s",
                (*(_encode(v) for v in patch.values()), record_id),
            )

    def delete(self, table: str, record_id: str) -> None:
        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM {self._table(table)} WHERE `id`=%s", (record_id,))

    def get(self, table: str, record_id: str) -> Optional[dict]:
        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT * FROM {self._table(table)} WHERE `id`=%s", (record_id,))
            return fetchone(cur)

    def query(
        self,
        table: str,
        *,
        eq: Optional[Mapping[str, Any]] = None,
        neq: Optional[Mapping[str, Any]] = None,
        gte: Optional[Mapping[str, Any]] = None,
        lte: Optional[Mapping[str, Any]] = None,
        in_: Optional[Mapping[str, Sequence[Any]]] = None,
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> list[dict]:
        clauses: list[str] = []
        params: list[Any] = []

        for col, value in (eq or {}).items():
            if value is None:
                clauses.append(f"{_ident(col)} IS NULL")
            else:
                clauses.append(f"{_ident(col)}=%s")
                params.append(value)
        for col, value in (neq or {}).items():
            if value is None:
                clauses.append(f"{_ident(col)} IS NOT NULL")
            else:
                clauses.append(f"({_ident(col)}<>%s OR {_ident(col)} IS NULL)")
                params.append(value)
        for op, filters in ((">=", gte), ("<=", lte)):
            for col, value in (filters or {}).items():
                clauses.append(f"{_ident(col)}{op}%s")
                params.append(value)
        for col, values in (in_ or {}).items():
            values = list(values)
            if not values:
                clauses.append("1=0")
                continue
            clauses.append(f"{_ident(col)} IN ({', '.join(['%s'] * len(values))})")
            params.extend(values)

        sql = f"SELECT * FROM {self._table(table)}"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        if order_by:
            sql += " ORDER BY " + ", ".join(
                f"{_ident(o[1:])} DESC" if o.startswith("-") else f"{_ident(o)} ASC" for o in order_by
            )
        if limit is not None:
            sql += f" LIMIT {int(limit)}"

        with _translate_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return fetchall(cur)
