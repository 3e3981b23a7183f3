"""Generic staged collection: client-side add/update/delete buffer for one child-entity type.

Every operation returns a new ``StagedCollection`` (or the same object when it
is a no-op); nothing is mutated in place and nothing talks to the store.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Union

from ..core.constants import TEMP_ID_PREFIX, TEMP_ID_RANDOM_LENGTH
from ..core.exceptions import StagingError

_BASE36 = string.digits + string.ascii_lowercase


def new_temp_id() -> str:
    """``temp-<epoch millis>-<random base36>``."""
    token = "".join(secrets.choice(_BASE36) for _ in range(TEMP_ID_RANDOM_LENGTH))
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}-{token}"


def is_temp_id(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(TEMP_ID_PREFIX)


def _frozen(data: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(data))


@dataclass(frozen=True)
class Draft:
    """A locally created record that has not been persisted yet."""

    temp_id: str
    data: Mapping[str, Any]
    kind: str = field(default="draft", init=False)


@dataclass(frozen=True)
class Persisted:
    """A record that exists in the store."""

    id: str
    data: Mapping[str, Any]
    kind: str = field(default="persisted", init=False)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Persisted":
        return cls(id=str(record["id"]), data=_frozen(record))


Row = Union[Draft, Persisted]


@dataclass(frozen=True)
class UpdatePatch:
    id: str
    fields: Mapping[str, Any]


@dataclass(frozen=True)
class DeleteMarker:
    """A persisted record marked for removal.

    ``meta`` carries what the delete needs besides the id, e.g. ``file_path``
    for storage cleanup or ``name`` for the audit description.
    """

    id: str
    meta: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class StagedCollection:
    to_add: tuple[Draft, ...] = ()
    to_update: tuple[UpdatePatch, ...] = ()
    to_delete: tuple[DeleteMarker, ...] = ()

    # -- drafts -----------------------------------------------------------

    def add_draft(self, data: Mapping[str, Any], *, temp_id: Optional[str] = None) -> tuple["StagedCollection", str]:
        temp_id = temp_id or new_temp_id()
        if any(d.temp_id == temp_id for d in self.to_add):
            raise StagingError(f"Draft {temp_id} already exists")
        draft = Draft(temp_id=temp_id, data=_frozen(data))
        return replace(self, to_add=self.to_add + (draft,)), temp_id

    def get_draft(self, temp_id: str) -> Draft:
        for d in self.to_add:
            if d.temp_id == temp_id:
                return d
        raise StagingError(f"Unknown draft {temp_id}")

    def edit_draft(self, temp_id: str, patch: Mapping[str, Any]) -> "StagedCollection":
        current = self.get_draft(temp_id)
        edited = Draft(temp_id=temp_id, data=_frozen({**current.data, **patch}))
        return replace(self, to_add=tuple(edited if d.temp_id == temp_id else d for d in self.to_add))

    def remove_draft(self, temp_id: str) -> "StagedCollection":
        self.get_draft(temp_id)
        return replace(self, to_add=tuple(d for d in self.to_add if d.temp_id != temp_id))

    # -- updates ----------------------------------------------------------

    def pending_update(self, record_id: str) -> Optional[UpdatePatch]:
        for p in self.to_update:
            if p.id == record_id:
                return p
        return None

    def queue_update(self, record_id: str, patch: Mapping[str, Any]) -> "StagedCollection":
        """Stage a patch; a later patch for the same id replaces the earlier one in place."""
        record_id = str(record_id)
        if self.is_pending_delete(record_id):
            return self

        new_patch = UpdatePatch(id=record_id, fields=_frozen(patch))
        if self.pending_update(record_id) is None:
            return replace(self, to_update=self.to_update + (new_patch,))
        return replace(self, to_update=tuple(new_patch if p.id == record_id else p for p in self.to_update))

    def cancel_update(self, record_id: str) -> "StagedCollection":
        return replace(self, to_update=tuple(p for p in self.to_update if p.id != str(record_id)))

    # -- deletes ----------------------------------------------------------

    def is_pending_delete(self, record_id: str) -> bool:
        return any(m.id == record_id for m in self.to_delete)

    def queue_delete(self, target: Union[str, Row], meta: Optional[Mapping[str, Any]] = None) -> "StagedCollection":
        """Mark a record for deletion.

        Deleting a draft discards it. Deleting a persisted record drops any
        pending update for it.
        """
        if isinstance(target, Draft):
            return self.remove_draft(target.temp_id)
        record_id = target.id if isinstance(target, Persisted) else str(target)
        if is_temp_id(record_id):
            return self.remove_draft(record_id)
        if self.is_pending_delete(record_id):
            return self

        marker = DeleteMarker(id=record_id, meta=_frozen(meta or {}))
        return replace(
            self,
            to_update=tuple(p for p in self.to_update if p.id != record_id),
            to_delete=self.to_delete + (marker,),
        )

    def cancel_delete(self, record_id: str) -> "StagedCollection":
        return replace(self, to_delete=tuple(m for m in self.to_delete if m.id != str(record_id)))

    # -- inspection -------------------------------------------------------

    def is_empty(self) -> bool:
        return not (self.to_add or self.to_update or self.to_delete)

    def count(self) -> int:
        return len(self.to_add) + len(self.to_update) + len(self.to_delete)

    def as_dict(self) -> dict:
        return {
            "to_add": [{"temp_id": d.temp_id, **_public(d.data)} for d in self.to_add],
            "to_update": [{"id": p.id, **_public(p.fields)} for p in self.to_update],
            "to_delete": [{"id": m.id, **dict(m.meta)} for m in self.to_delete],
        }


def _public(data: Mapping[str, Any]) -> dict:
    # Selected files are reported by name only.
    out = {}
    for k, v in data.items():
        out[k] = getattr(v, "filename", v) if k == "file" else v
    return out


class RowState(str, Enum):
    NORMAL = "normal"
    PENDING_UPDATE = "pending_update"
    PENDING_DELETE = "pending_delete"
    DRAFT = "draft"


@dataclass(frozen=True)
class VisibleRow:
    key: str
    kind: str
    state: RowState
    data: Mapping[str, Any]

    def as_dict(self) -> dict:
        return {"key": self.key, "kind": self.kind, "state": self.state.value, **_public(self.data)}


def compose_visible(persisted: Iterable[Union[Persisted, Mapping[str, Any]]], staged: StagedCollection) -> list[VisibleRow]:
    """The list a section renders.

    Persisted rows keep their stored order; a pending update is shown with its
    patch merged in, a pending delete stays visible flagged for deletion.
    Drafts follow, in the order they were added.
    """

    rows: list[VisibleRow] = []
    for item in persisted:
        row = item if isinstance(item, Persisted) else Persisted.from_record(item)
        if staged.is_pending_delete(row.id):
            rows.append(VisibleRow(row.id, row.kind, RowState.PENDING_DELETE, row.data))
            continue
        patch = staged.pending_update(row.id)
        if patch is not None:
            rows.append(VisibleRow(row.id, row.kind, RowState.PENDING_UPDATE, _frozen({**row.data, **patch.fields})))
        else:
            rows.append(VisibleRow(row.id, row.kind, RowState.NORMAL, row.data))

    rows.extend(VisibleRow(d.temp_id, d.kind, RowState.DRAFT, d.data) for d in staged.to_add)
    return rows
