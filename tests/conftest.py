from __future__ import annotations

from collections import defaultdict

import pytest

from src.care_office.care_office.core.exceptions import RemoteStoreError, StorageError


def _key(value):
    return (value is None, value)


class FakeStore:
    """In-memory ``RecordStore`` that records every call and can be told to fail."""

    MUTATIONS = ("create", "update", "delete")

    def __init__(self):
        self.tables: dict[str, dict[str, dict]] = defaultdict(dict)
        self.calls: list[tuple] = []
        self._failures: dict[tuple[str, str], list] = {}
        self._seq = 0

    def seed(self, table: str, *rows: dict) -> None:
        for row in rows:
            self.tables[table][str(row["id"])] = dict(row)

    def fail(self, op: str, table: str, *, after: int = 0, error: Exception | None = None) -> None:
        """Make the ``after + 1``-th ``op`` call on ``table`` raise."""
        self._failures[(op, table)] = [after, error or RemoteStoreError("boom", code="9999")]

    def _check(self, op: str, table: str) -> None:
        rule = self._failures.get((op, table))
        if rule is None:
            return
        if rule[0] == 0:
            del self._failures[(op, table)]
            raise rule[1]
        rule[0] -= 1

    def mutations(self, *, include_activity: bool = False) -> list[tuple]:
        return [
            c
            for c in self.calls
            if c[0] in self.MUTATIONS and (include_activity or c[1] != "activity_log")
        ]

    def activity(self) -> list[dict]:
        return list(self.tables["activity_log"].values())

    def create(self, table, record):
        self.calls.append(("create", table, dict(record)))
        self._check("create", table)
        self._seq += 1
        row = dict(record)
        row.setdefault("id", f"{table}-{self._seq}")
        self.tables[table][str(row["id"])] = row
        return dict(row)

    def update(self, table, record_id, patch):
        self.calls.append(("update", table, str(record_id), dict(patch)))
        self._check("update", table)
        if str(record_id) in self.tables[table]:
            self.tables[table][str(record_id)].update(patch)

    def delete(self, table, record_id):
        self.calls.append(("delete", table, str(record_id)))
        self._check("delete", table)
        self.tables[table].pop(str(record_id), None)

    def get(self, table, record_id):
        self.calls.append(("get", table, str(record_id)))
        self._check("get", table)
        row = self.tables[table].get(str(record_id))
        return dict(row) if row else None

    def query(self, table, *, eq=None, neq=None, gte=None, lte=None, in_=None, order_by=(), limit=None):
        self.calls.append(("query", table))
        self._check("query", table)
        rows = [dict(r) for r in self.tables[table].values()]
        for col, value in (eq or {}).items():
            rows = [r for r in rows if r.get(col) == value]
        for col, value in (neq or {}).items():
            rows = [r for r in rows if r.get(col) != value]
        for col, value in (gte or {}).items():
            rows = [r for r in rows if r.get(col) is not None and r[col] >= value]
        for col, value in (lte or {}).items():
            rows = [r for r in rows if r.get(col) is not None and r[col] <= value]
        for col, values in (in_ or {}).items():
            rows = [r for r in rows if r.get(col) in set(values)]
        for order in reversed(list(order_by)):
            desc = order.startswith("-")
            col = order.lstrip("-")
            rows.sort(key=lambda r: _key(r.get(col)), reverse=desc)
        return rows[:limit] if limit is not None else rows


class FakeStorage:
    """In-memory ``FileStorage``."""

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.calls: list[tuple] = []
        self._failures: set[str] = set()

    def fail(self, op: str) -> None:
        self._failures.add(op)

    def _check(self, op: str, path: str) -> None:
        if op in self._failures:
            raise StorageError(f"{op} failed for {path}")

    def upload(self, bucket, path, content, *, content_type=None, upsert=False):
        self.calls.append(("upload", bucket, path))
        self._check("upload", path)
        self.objects[(bucket, path)] = content

    def download(self, bucket, path):
        self.calls.append(("download", bucket, path))
        self._check("download", path)
        try:
            return self.objects[(bucket, path)]
        except KeyError:
            raise StorageError(f"Object not found: {bucket}/{path}", code="404") from None

    def remove(self, bucket, path):
        self.calls.append(("remove", bucket, path))
        self._check("remove", path)
        self.objects.pop((bucket, path), None)

    def public_url(self, bucket, path):
        return f"/files/{bucket}/{path}"


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()
