from __future__ import annotations

from datetime import datetime

import pytest

from src.care_office.care_office.activity.logger import ActivityLogger
from src.care_office.care_office.core.enums import Severity
from src.care_office.care_office.core.exceptions import (
    FieldValidationError,
    RemoteStoreError,
    SaveFailedError,
    SaveInProgressError,
)
from src.care_office.care_office.notifications.toasts import ToastCollector
from src.care_office.care_office.pages.editor import SectionEditor
from src.care_office.care_office.pages.registry import PageRegistry
from src.care_office.care_office.saving.orchestrator import BatchSaveOrchestrator
from src.care_office.care_office.staff.page import STAFF_PAGE
from src.care_office.care_office.store.file_storage import UploadedFile

CREATED = datetime(2024, 1, 1, 9, 0)


@pytest.fixture()
def registry(store):
    store.seed("staff", {"id": "s1", "name": "Ann Lee", "email": "ann@example.com", "status": "active"})
    store.seed(
        "staff_compliance",
        {"id": "c1", "staff_id": "s1", "compliance_name": "First Aid", "created_at": CREATED},
        {"id": "c2", "staff_id": "s1", "compliance_name": "Manual Handling", "created_at": CREATED},
    )
    store.seed(
        "staff_documents",
        {"id": "d1", "staff_id": "s1", "file_name": "police.pdf", "file_path": "s1/documents/police.pdf", "created_at": CREATED},
    )
    return PageRegistry(store, [STAFF_PAGE])


@pytest.fixture()
def orchestrator(store, storage):
    return BatchSaveOrchestrator(store, storage, ActivityLogger(store))


@pytest.fixture()
def page(registry, store):
    opened = registry.open("staff", "s1")
    store.calls.clear()
    return opened


def _descriptions(store):
    return [row["description"] for row in store.activity()]


def test_empty_save_issues_no_mutations(page, orchestrator, store):
    toasts = ToastCollector()

    outcome = orchestrator.save(page, notifier=toasts)

    assert outcome.mutations == 0
    assert store.mutations(include_activity=True) == []
    assert page.is_dirty is False
    assert [t.severity for t in toasts.toasts] == [Severity.SUCCESS]
    assert set(page.refresh.values()) == {0}


def test_validation_rejects_before_any_remote_call(page, orchestrator, store):
    SectionEditor(page, "staff_compliance").add({"compliance_name": "CPR"})
    page.set_fields({"email": ""})
    toasts = ToastCollector()

    with pytest.raises(FieldValidationError):
        orchestrator.save(page, notifier=toasts)

    assert store.calls == []
    assert page.field_errors == {"email": "Email is required when status is Active or Inactive"}
    assert page.scroll_to == "email"
    assert len(toasts.errors) == 1
    assert page.pending.count() == 1
    assert page.saving is False


def test_blank_email_allowed_for_draft_status(page, orchestrator, store):
    page.set_fields({"status": "draft", "email": ""})

    orchestrator.save(page, notifier=ToastCollector())

    assert store.mutations() == [("update", "staff", "s1", {"email": None, "status": "draft"})]


def test_partial_failure_keeps_buffer_and_shows_one_toast(page, orchestrator, store):
    editor = SectionEditor(page, "staff_compliance")
    for name in ("CPR", "Fire Safety", "Food Handling"):
        editor.add({"compliance_name": name})
    page.set_fields({"phone": "0400 111 222"})
    pending_before = page.pending
    store.fail("create", "staff_compliance", after=1)
    toasts = ToastCollector()

    with pytest.raises(SaveFailedError):
        orchestrator.save(page, notifier=toasts)

    creates = [c for c in store.mutations() if c[0] == "create"]
    assert [c[2]["compliance_name"] for c in creates] == ["CPR", "Fire Safety"]
    assert not any(c[1] == "staff" for c in store.mutations())
    assert page.pending is pending_before
    assert page.form["phone"] == "0400 111 222"
    assert len(toasts.toasts) == 1 and toasts.toasts[0].severity == Severity.ERROR
    assert page.refresh["staff_compliance"] == 0


def test_success_clears_buffer_and_bumps_only_touched_sections(page, orchestrator, store):
    SectionEditor(page, "staff_compliance").add({"compliance_name": "CPR"})
    page.set_fields({"phone": "0400 111 222"})

    outcome = orchestrator.save(page, notifier=ToastCollector(), user_name="Admin")

    assert outcome.changed_fields == ("phone",)
    assert outcome.refreshed == ("staff_compliance",)
    assert page.refresh == {"staff_compliance": 1, "training": 0, "documents": 0, "activity_log": 1}
    assert page.pending.has_changes() is False
    assert page.original["phone"] == "0400 111 222"
    assert page.is_dirty is False
    assert _descriptions(store) == [
        'Added compliance requirement "CPR"',
        'Updated phone number from "(empty)" to "0400 111 222"',
    ]


def test_slices_drain_in_order_adds_then_updates_then_deletes(page, orchestrator, store):
    docs = SectionEditor(page, "documents")
    compliance = SectionEditor(page, "staff_compliance")
    docs.add({"file": UploadedFile("plan.pdf", b"%PDF", "application/pdf")})
    compliance.delete("c1")
    compliance.edit("c2", {"expiry_date": "2026-01-31"})
    compliance.add({"compliance_name": "CPR"})

    orchestrator.save(page, notifier=ToastCollector())

    assert [(c[0], c[1]) for c in store.mutations()] == [
        ("create", "staff_compliance"),
        ("update", "staff_compliance"),
        ("delete", "staff_compliance"),
        ("create", "staff_documents"),
    ]


def test_document_delete_removes_blob_first(page, orchestrator, store, storage):
    storage.objects[("staff-documents", "s1/documents/police.pdf")] = b"pdf"
    SectionEditor(page, "documents").delete("d1")

    orchestrator.save(page, notifier=ToastCollector())

    assert storage.calls == [("remove", "staff-documents", "s1/documents/police.pdf")]
    assert "d1" not in store.tables["staff_documents"]
    assert _descriptions(store) == ['Deleted document "police.pdf"']


def test_storage_failure_aborts_before_row_delete(page, orchestrator, store, storage):
    storage.fail("remove")
    SectionEditor(page, "documents").delete("d1")
    toasts = ToastCollector()

    with pytest.raises(SaveFailedError):
        orchestrator.save(page, notifier=toasts)

    assert store.mutations() == []
    assert "d1" in store.tables["staff_documents"]
    assert len(toasts.errors) == 1


def test_document_upload_records_file_columns(page, orchestrator, store, storage):
    SectionEditor(page, "documents").add({"file": UploadedFile("report.pdf", b"%PDF", "application/pdf")})

    orchestrator.save(page, notifier=ToastCollector())

    ((bucket, path),) = storage.objects
    assert bucket == "staff-documents"
    assert path.startswith("s1/documents/") and path.endswith(".pdf")
    (row,) = [r for r in store.tables["staff_documents"].values() if r["id"] != "d1"]
    assert row["file_name"] == "report.pdf"
    assert row["file_size"] == 4
    assert row["file_path"] == path
    assert _descriptions(store) == ['Uploaded document "report.pdf"']


def test_photo_upload_and_removal(page, orchestrator, store):
    page.select_photo(UploadedFile("me.png", b"png", "image/png"))
    orchestrator.save(page, notifier=ToastCollector())

    url = page.persisted["photo_url"]
    assert url.startswith("/files/staff-documents/s1/profile/") and url.endswith(".png")
    assert store.tables["staff"]["s1"]["photo_url"] == url

    page.clear_photo()
    assert page.is_dirty
    orchestrator.save(page, notifier=ToastCollector())

    assert page.persisted["photo_url"] is None
    assert _descriptions(store) == ["Updated profile photo", "Removed profile photo"]


def test_reentrant_save_is_rejected(page, orchestrator, store):
    page.saving = True

    with pytest.raises(SaveInProgressError):
        orchestrator.save(page, notifier=ToastCollector())

    assert store.calls == []


def test_duplicate_email_is_reported_on_the_field(page, orchestrator, store):
    page.set_fields({"email": "dup@example.com"})
    store.fail(
        "update",
        "staff",
        error=RemoteStoreError("Duplicate entry 'dup@example.com' for key 'staff.uq_staff_email'", code="1062"),
    )
    toasts = ToastCollector()

    with pytest.raises(SaveFailedError) as exc:
        orchestrator.save(page, notifier=toasts)

    assert exc.value.field == "email"
    assert "email" in page.field_errors
    assert [t.title for t in toasts.toasts] == ["Email already in use"]
    assert page.form["email"] == "dup@example.com"


def test_audit_failure_does_not_abort_save(page, orchestrator, store):
    store.fail("create", "activity_log")
    SectionEditor(page, "staff_compliance").add({"compliance_name": "CPR"})

    outcome = orchestrator.save(page, notifier=ToastCollector())

    assert outcome.mutations == 1
    assert page.pending.has_changes() is False


def test_update_cannot_blank_a_required_column(page, orchestrator, store):
    compliance = SectionEditor(page, "staff_compliance")

    with pytest.raises(FieldValidationError) as exc:
        compliance.edit("c1", {"compliance_name": ""})
    assert exc.value.field == "compliance_name"
    assert page.pending.has_changes() is False

    compliance.edit("c1", {"expiry_date": "2026-06-30"})
    with pytest.raises(FieldValidationError):
        compliance.edit("c1", {"compliance_name": "  "})
    orchestrator.save(page, notifier=ToastCollector())

    assert store.mutations() == [("update", "staff_compliance", "c1", {"expiry_date": "2026-06-30"})]
