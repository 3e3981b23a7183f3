"""Batch save: commit a page's form changes, photo and every staged section in one pass.

The pass is sequential and fail-fast. Slices are drained in ``SLICE_ORDER``
(adds, then updates, then deletes), followed by the photo and a partial update
of the main record. Any remote failure stops the pass, produces exactly one
error toast and leaves the pending buffer untouched so the user can retry.
Work committed before the failure is not rolled back.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from ..activity.logger import ActivityLogger, detect_changes
from ..common.datetime_utils import now_local
from ..core.constants import ACTIVITY_LOG_SECTION
from ..core.enums import ActivityType
from ..core.exceptions import FieldValidationError, RemoteStoreError, SaveFailedError, SaveInProgressError
from ..errors.parser import parse_store_error
from ..notifications.toasts import Notifier
from ..pages.context import PageContext, PhotoState
from ..staging.collection import DeleteMarker, Draft, UpdatePatch
from ..store.file_storage import FileStorage
from ..store.repository import RecordStore
from .sections import SectionSpec
from .validation import validate_formats, validate_references, validate_required_when

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveOutcome:
    mutations: int
    changed_fields: tuple[str, ...]
    refreshed: tuple[str, ...]


class BatchSaveOrchestrator:
    def __init__(self, store: RecordStore, storage: FileStorage, activity: ActivityLogger):
        self._store = store
        self._storage = storage
        self._activity = activity

    def save(self, page: PageContext, *, notifier: Notifier, user_name: Optional[str] = None) -> SaveOutcome:
        if page.saving:
            raise SaveInProgressError("A save is already in progress")
        page.saving = True
        try:
            return self._save(page, notifier, user_name)
        finally:
            page.saving = False

    def _save(self, page: PageContext, notifier: Notifier, user_name: Optional[str]) -> SaveOutcome:
        definition = page.definition
        persisted = page.persisted
        normalized = definition.normalize_form(page.form)
        baseline = definition.normalize_form(definition.form_from_record(persisted))
        changes = detect_changes(baseline, normalized)
        patch = {name: change.new for name, change in changes.items()}
        page.clear_field_errors()

        try:
            if patch:
                validate_formats(definition.formats, patch)
                validate_required_when(definition.rules, persisted, patch)
            validate_references(definition.sections, page.pending)
        except FieldValidationError as exc:
            page.mark_field_error(exc.field, exc.title)
            notifier.error(exc.title, exc.description)
            raise

        pending = page.pending
        run = _SaveRun(self._store, self._storage, self._activity, page, user_name)
        photo_overlay: dict[str, Any] = {}
        try:
            for spec in definition.ordered_sections():
                staged = pending.slice(spec.name)
                for draft in staged.to_add:
                    run.create(spec, draft)
                for update in staged.to_update:
                    run.update(spec, update)
                for marker in staged.to_delete:
                    run.delete(spec, marker)

            photo_overlay = run.save_photo()

            if patch:
                self._store.update(definition.table, page.entity_id, patch)
                run.mutations += 1
        except RemoteStoreError as exc:
            parsed = parse_store_error(exc)
            logger.warning(
                "Save of %s %s failed after %d mutation(s): %s",
                page.kind.value,
                page.entity_id,
                run.mutations,
                exc.message,
            )
            if parsed.field:
                page.mark_field_error(parsed.field, parsed.description)
            notifier.error(parsed.title, parsed.description)
            raise SaveFailedError(parsed, exc, field=parsed.field) from exc

        if changes:
            self._activity.log_activity(
                activity_type=ActivityType.UPDATE,
                entity_type=definition.entity_type,
                entity_id=page.entity_id,
                entity_name=normalized.get(definition.display_field) or page.entity_name,
                user_name=user_name,
                changes=changes,
            )

        record = {**persisted, **normalized, **photo_overlay}
        page.persisted = MappingProxyType(record)
        page.original = MappingProxyType(definition.form_from_record(record))
        page.form = page.original
        page.entity_name = record.get(definition.display_field)
        page.photo = PhotoState()

        touched = pending.non_empty()
        page.pending = pending.cleared()
        page.bump(touched)
        if run.mutations:
            page.bump([ACTIVITY_LOG_SECTION])

        notifier.success(definition.success_message)
        logger.info("Saved %s %s: %d mutation(s)", page.kind.value, page.entity_id, run.mutations)
        return SaveOutcome(mutations=run.mutations, changed_fields=tuple(patch), refreshed=tuple(touched))


class _SaveRun:
    """Per-save helper that performs and audits each remote write."""

    def __init__(self, store: RecordStore, storage: FileStorage, activity: ActivityLogger, page: PageContext, user_name):
        self._store = store
        self._storage = storage
        self._activity = activity
        self._page = page
        self._user_name = user_name
        self.mutations = 0
        # temp id -> id the store assigned, for rows created earlier in this pass
        self.created: dict[str, str] = {}

    def _resolve(self, spec: SectionSpec, record: dict) -> dict:
        for f, temp_id in spec.draft_references(record).items():
            record[f] = self.created[temp_id]
        return record

    def _log(self, activity_type: ActivityType, description: str) -> None:
        self._activity.log_activity(
            activity_type=activity_type,
            entity_type=self._page.definition.entity_type,
            entity_id=self._page.entity_id,
            entity_name=self._page.entity_name,
            user_name=self._user_name,
            custom_description=description,
        )

    def _upload(self, spec: SectionSpec, upload) -> dict:
        path = spec.files.object_path(self._page.entity_id, upload)
        self._storage.upload(spec.files.bucket, path, upload.content, content_type=upload.content_type)
        return spec.files.columns(path, upload)

    def create(self, spec: SectionSpec, draft: Draft) -> None:
        data = dict(draft.data)
        upload = data.pop("file", None)
        record = self._resolve(spec, spec.payload(self._page.entity_id, data))
        if spec.files and upload is not None:
            record.update(self._upload(spec, upload))
        row = self._store.create(spec.table, record)
        self.created[draft.temp_id] = str(row["id"])
        self.mutations += 1
        self._log(ActivityType.CREATE, spec.describe(spec.add_verb, spec.label(record)))

    def update(self, spec: SectionSpec, update: UpdatePatch) -> None:
        fields = dict(update.fields)
        upload = fields.pop("file", None)
        current = self._page.child(spec.name, update.id) or {}
        patch = self._resolve(spec, spec.patch(fields))
        if spec.files and upload is not None:
            if current.get("file_path"):
                self._storage.remove(spec.files.bucket, current["file_path"])
            patch.update(self._upload(spec, upload))
        if not patch:
            return
        self._store.update(spec.table, update.id, patch)
        self.mutations += 1
        self._log(ActivityType.UPDATE, spec.describe("Updated", spec.label({**current, **patch})))

    def delete(self, spec: SectionSpec, marker: DeleteMarker) -> None:
        meta: Mapping[str, Any] = marker.meta
        label = meta.get("label")
        file_path = meta.get("file_path")
        if not label or (spec.files and not file_path):
            row = self._page.child(spec.name, marker.id) or self._store.get(spec.table, marker.id) or {}
            label = label or spec.label(row)
            file_path = file_path or row.get("file_path")

        if spec.files and file_path:
            self._storage.remove(spec.files.bucket, file_path)
        self._store.delete(spec.table, marker.id)
        self.mutations += 1
        self._log(ActivityType.DELETE, spec.describe("Deleted", label))

    def save_photo(self) -> dict:
        page = self._page
        support = page.definition.photo
        if support is None or not page.photo.dirty:
            return {}

        if page.photo.selected is not None:
            upload = page.photo.selected
            path = f"{page.entity_id}/{support.folder}/{int(time.time() * 1000)}.{upload.extension}"
            self._storage.upload(support.bucket, path, upload.content, content_type=upload.content_type, upsert=True)
            url = self._storage.public_url(support.bucket, path)
            description = "Updated profile photo"
        else:
            url = None
            description = "Removed profile photo"

        self._store.update(page.definition.table, page.entity_id, {support.column: url, "updated_at": now_local()})
        self.mutations += 1
        self._log(ActivityType.UPDATE, description)
        return {support.column: url}
