from __future__ import annotations

from typing import Any, Callable, Mapping

from ..core.exceptions import NotFoundError, StagingError, ValidationError
from ..saving.sections import SectionSpec
from ..saving.validation import check_draft_references
from ..staging.collection import StagedCollection, VisibleRow, is_temp_id
from ..store.file_storage import UploadedFile
from .context import PageContext


class SectionEditor:
    """Stages edits to one section of an open page; never touches the store."""

    def __init__(self, page: PageContext, name: str):
        try:
            self._spec: SectionSpec = page.definition.section(name)
        except KeyError:
            raise StagingError(f"Unknown section {name!r} for {page.kind.value} pages") from None
        self._page = page
        self.name = name

    @property
    def staged(self) -> StagedCollection:
        return self._page.pending.slice(self.name)

    def _swap(self, change: Callable[[StagedCollection], StagedCollection]) -> None:
        self._page.pending = self._page.pending.replace(self.name, change(self.staged))

    def _accepted(self, data: Mapping[str, Any]) -> dict:
        allowed = set(self._spec.fields)
        if self._spec.files:
            allowed.add("file")
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise ValidationError(f"Unknown field(s) for {self._spec.noun}: {', '.join(unknown)}")
        upload = data.get("file")
        if upload is not None and not isinstance(upload, UploadedFile):
            raise ValidationError("file must be an uploaded file")
        return dict(data)

    def rows(self) -> list[VisibleRow]:
        return self._page.visible_rows(self.name)

    def add(self, data: Mapping[str, Any]) -> str:
        data = self._accepted(data)
        self._spec.validate_draft(data)
        check_draft_references(self._spec, data, self._page.pending)
        staged, temp_id = self.staged.add_draft(data)
        self._swap(lambda _: staged)
        return temp_id

    def edit(self, key: str, patch: Mapping[str, Any]) -> None:
        """Edit a draft in place, or stage an update for a persisted row."""
        patch = self._accepted(patch)
        if is_temp_id(key):
            merged = {**self.staged.get_draft(key).data, **patch}
            self._spec.validate_draft(merged)
            check_draft_references(self._spec, merged, self._page.pending)
            self._swap(lambda c: c.edit_draft(key, patch))
            return

        row = self._page.child(self.name, key)
        if row is None:
            raise NotFoundError(f"{self._spec.noun.capitalize()} {key} not found")
        pending = self.staged.pending_update(key)
        merged = {**(pending.fields if pending else {}), **patch}
        self._spec.validate_update(row, merged)
        check_draft_references(self._spec, merged, self._page.pending)
        self._swap(lambda c: c.queue_update(key, merged))

    def cancel_update(self, record_id: str) -> None:
        self._swap(lambda c: c.cancel_update(record_id))

    def delete(self, key: str) -> None:
        if is_temp_id(key):
            self._swap(lambda c: c.remove_draft(key))
            self._drop_dependents(key)
            return

        row = self._page.child(self.name, key)
        if row is None:
            raise NotFoundError(f"{self._spec.noun.capitalize()} {key} not found")
        meta = {"label": self._spec.label(row)}
        if self._spec.files and row.get("file_path"):
            meta["file_path"] = row["file_path"]
        self._swap(lambda c: c.queue_delete(key, meta))

    def cancel_delete(self, record_id: str) -> None:
        self._swap(lambda c: c.cancel_delete(record_id))

    def _drop_dependents(self, temp_id: str) -> None:
        """Discard staged rows in other sections that still point at a removed draft."""
        for spec in self._page.definition.sections:
            fields = [f for f, target in spec.references.items() if target == self.name]
            if not fields:
                continue
            staged = self._page.pending.slice(spec.name)
            for draft in staged.to_add:
                if any(draft.data.get(f) == temp_id for f in fields):
                    staged = staged.remove_draft(draft.temp_id)
            for update in staged.to_update:
                if any(update.fields.get(f) == temp_id for f in fields):
                    staged = staged.cancel_update(update.id)
            self._page.pending = self._page.pending.replace(spec.name, staged)
