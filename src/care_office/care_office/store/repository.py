from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence


class RecordStore(Protocol):
    """Generic CRUD over named record collections.

    Note (DIP): services, the save orchestrator and the activity logger depend
    on this interface, never on a concrete database. Every failing call raises
    ``RemoteStoreError``.
    """

    def create(self, table: str, record: Mapping[str, Any]) -> dict:
        """Insert a record and return it with its store-assigned ``id``."""

        raise NotImplementedError

    def update(self, table: str, record_id: str, patch: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, table: str, record_id: str) -> None:
        raise NotImplementedError

    def get(self, table: str, record_id: str) -> Optional[dict]:
        raise NotImplementedError

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
        """Filtered select. ``order_by`` entries prefixed with ``-`` sort descending."""

        raise NotImplementedError
