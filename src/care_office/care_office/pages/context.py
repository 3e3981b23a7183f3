from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from ..core.constants import ACTIVITY_LOG_SECTION
from ..core.enums import PageKind
from ..core.exceptions import ValidationError
from ..staging.changeset import PendingChangeSet
from ..staging.collection import VisibleRow, compose_visible
from ..staging.dirty import DirtyState, DirtyTracker
from ..store.file_storage import UploadedFile
from .definition import PageDefinition


@dataclass
class PhotoState:
    selected: Optional[UploadedFile] = None
    cleared: bool = False

    @property
    def dirty(self) -> bool:
        return self.selected is not None or self.cleared


@dataclass
class PageContext:
    """Server-side state of one open detail page.

    ``form``, ``original`` and ``pending`` are replaced wholesale on every
    change, never mutated, so the dirty tracker can compare them by identity.
    ``entity_name`` is the persisted display name used for audit entries.
    """

    token: str
    definition: PageDefinition
    entity_id: str
    persisted: Mapping[str, Any]
    original: Mapping[str, Any]
    form: Mapping[str, Any]
    pending: PendingChangeSet
    entity_name: Optional[str] = None
    children: dict[str, list[Mapping[str, Any]]] = field(default_factory=dict)
    refresh: dict[str, int] = field(default_factory=dict)
    loaded_refresh: dict[str, int] = field(default_factory=dict)
    photo: PhotoState = field(default_factory=PhotoState)
    saving: bool = False
    field_errors: dict[str, str] = field(default_factory=dict)
    scroll_to: Optional[str] = None
    tracker: DirtyTracker = field(default_factory=DirtyTracker)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @classmethod
    def open(
        cls,
        *,
        token: str,
        definition: PageDefinition,
        record: Mapping[str, Any],
        children: Optional[Mapping[str, list]] = None,
    ) -> "PageContext":
        original = MappingProxyType(definition.form_from_record(record))
        counters = {name: 0 for name in (*definition.section_names, ACTIVITY_LOG_SECTION)}
        return cls(
            token=token,
            definition=definition,
            entity_id=str(record["id"]),
            persisted=MappingProxyType(dict(record)),
            original=original,
            form=original,
            pending=PendingChangeSet.empty(definition.section_names),
            entity_name=record.get(definition.display_field),
            children={name: list((children or {}).get(name, [])) for name in definition.section_names},
            refresh=dict(counters),
            loaded_refresh=dict(counters),
        )

    @property
    def kind(self) -> PageKind:
        return self.definition.kind

    def dirty_state(self) -> DirtyState:
        return self.tracker.compute(self.form, self.original, self.pending, photo_dirty=self.photo.dirty)

    @property
    def is_dirty(self) -> bool:
        return self.dirty_state().is_dirty

    # -- form ---------------------------------------------------------------

    def set_fields(self, values: Mapping[str, Any]) -> None:
        unknown = sorted(set(values) - set(self.definition.form_fields))
        if unknown:
            raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")
        self.form = MappingProxyType({**self.form, **self.definition.coerce(values)})
        for name in values:
            self.field_errors.pop(name, None)

    def discard_changes(self) -> None:
        self.form = self.original
        self.pending = self.pending.cleared()
        self.photo = PhotoState()
        self.clear_field_errors()

    def mark_field_error(self, field_name: str, message: str) -> None:
        self.field_errors[field_name] = message
        self.scroll_to = field_name

    def clear_field_errors(self) -> None:
        self.field_errors = {}
        self.scroll_to = None

    # -- photo --------------------------------------------------------------

    def select_photo(self, upload: UploadedFile) -> None:
        if self.definition.photo is None:
            raise ValidationError(f"{self.kind.value.capitalize()} records have no photo")
        self.photo = PhotoState(selected=upload)

    def clear_photo(self) -> None:
        if self.definition.photo is None:
            raise ValidationError(f"{self.kind.value.capitalize()} records have no photo")
        self.photo = PhotoState(cleared=bool(self.persisted.get(self.definition.photo.column)))

    # -- sections -----------------------------------------------------------

    def child(self, section: str, record_id: str) -> Optional[Mapping[str, Any]]:
        for row in self.children.get(section, []):
            if str(row.get("id")) == str(record_id):
                return row
        return None

    def visible_rows(self, section: str) -> list[VisibleRow]:
        return compose_visible(self.children.get(section, []), self.pending.slice(section))

    def stale_sections(self) -> list[str]:
        return [name for name in self.definition.section_names if self.refresh[name] != self.loaded_refresh[name]]

    def bump(self, names) -> None:
        for name in names:
            self.refresh[name] = self.refresh.get(name, 0) + 1

    def as_dict(self) -> dict:
        state = self.dirty_state()
        return {
            "token": self.token,
            "kind": self.kind.value,
            "entity_id": self.entity_id,
            "entity_name": self.entity_name,
            "form": dict(self.form),
            "photo_url": self.persisted.get(self.definition.photo.column) if self.definition.photo else None,
            "photo": {
                "selected": self.photo.selected.filename if self.photo.selected else None,
                "cleared": self.photo.cleared,
            },
            "sections": {name: [r.as_dict() for r in self.visible_rows(name)] for name in self.definition.section_names},
            "pending": self.pending.as_dict(),
            "pending_count": self.pending.count(),
            "is_dirty": state.is_dirty,
            "form_changed": state.form_changed,
            "saving": self.saving,
            "field_errors": dict(self.field_errors),
            "scroll_to": self.scroll_to,
            "refresh": dict(self.refresh),
        }
