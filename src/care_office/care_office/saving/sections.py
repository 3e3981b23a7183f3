from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from ..common.validators import is_blank
from ..core.exceptions import FieldValidationError
from ..staging.collection import is_temp_id
from ..store.file_storage import UploadedFile, unique_object_name

# Order in which a save pass drains slices; each page processes the subset it owns.
SLICE_ORDER = (
    "staff_compliance",
    "training",
    "documents",
    "medications",
    "service_providers",
    "shift_notes",
    "goals",
    "goal_progress",
    "funding",
    "contacts",
    "house_participants",
    "house_staff",
    "calendar_events",
    "checklists",
    "checklist_items",
    "forms",
    "form_assignments",
    "resources",
)


@dataclass(frozen=True)
class FileSupport:
    """Where a section's attachments live and which columns describe them."""

    bucket: str
    folder: str
    required: bool = False

    def object_path(self, entity_id: str, upload: UploadedFile) -> str:
        return f"{entity_id}/{self.folder}/{unique_object_name(upload)}"

    @staticmethod
    def columns(path: str, upload: UploadedFile) -> dict:
        return {
            "file_path": path,
            "file_name": upload.filename,
            "file_size": upload.size,
            "file_type": upload.content_type,
        }


@dataclass(frozen=True)
class SectionSpec:
    """Everything the save pass needs to persist one child-entity slice."""

    name: str
    table: str
    parent_key: str
    noun: str
    fields: tuple[str, ...]
    title_field: str
    detail_field: Optional[str] = None
    required: tuple[str, ...] = ()
    defaults: Mapping[str, Any] = field(default_factory=dict)
    files: Optional[FileSupport] = None
    add_verb: str = "Added"
    order_by: tuple[str, ...] = ("created_at",)
    label_fn: Optional[Callable[[Mapping[str, Any]], str]] = None
    # field -> section whose unsaved drafts it may point at by temp id
    references: Mapping[str, str] = field(default_factory=dict)

    def _require(self, data: Mapping[str, Any]) -> None:
        for f in self.required:
            if is_blank(data.get(f)):
                label = f.replace("_", " ").capitalize()
                raise FieldValidationError(f, f"{label} is required", f"Please enter a {self.noun} {f.replace('_', ' ')}.")

    def validate_draft(self, data: Mapping[str, Any]) -> None:
        self._require(data)
        if self.files and self.files.required and not isinstance(data.get("file"), UploadedFile):
            raise FieldValidationError("file", "File is required", f"Please choose a file for the {self.noun}.")

    def validate_update(self, row: Mapping[str, Any], fields: Mapping[str, Any]) -> None:
        """A persisted row must still carry its required columns once ``fields`` are applied."""
        self._require({**row, **fields})

    def draft_references(self, data: Mapping[str, Any]) -> dict[str, str]:
        return {f: data[f] for f in self.references if is_temp_id(data.get(f))}

    def _clean(self, data: Mapping[str, Any]) -> dict:
        return {f: (None if data[f] == "" else data[f]) for f in self.fields if f in data}

    def payload(self, entity_id: str, data: Mapping[str, Any]) -> dict:
        record = {f: v for f, v in self.defaults.items()}
        record.update({k: v for k, v in self._clean(data).items() if v is not None or k not in self.defaults})
        record[self.parent_key] = entity_id
        return record

    def patch(self, data: Mapping[str, Any]) -> dict:
        return self._clean(data)

    def label(self, data: Mapping[str, Any]) -> str:
        """How an item is named in audit descriptions, e.g. ``"Physio" (weekly)``."""
        if self.label_fn:
            return self.label_fn(data)
        value = data.get(self.title_field)
        text = f'"{value}"' if not is_blank(value) else f'"Unknown {self.noun}"'
        if self.detail_field and not is_blank(data.get(self.detail_field)):
            text += f" ({data[self.detail_field]})"
        return text

    def describe(self, verb: str, label: str) -> str:
        return f"{verb} {self.noun} {label}"
