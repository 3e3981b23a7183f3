from __future__ import annotations

from datetime import datetime

import pytest

from src.care_office.care_office.activity.logger import ActivityLogger
from src.care_office.care_office.core.exceptions import NotFoundError, StagingError, ValidationError
from src.care_office.care_office.houses.page import HOUSE_PAGE
from src.care_office.care_office.pages.editor import SectionEditor
from src.care_office.care_office.pages.registry import PageRegistry
from src.care_office.care_office.participants.page import PARTICIPANT_PAGE
from src.care_office.care_office.notifications.toasts import ToastCollector
from src.care_office.care_office.saving.orchestrator import BatchSaveOrchestrator
from src.care_office.care_office.staff.page import STAFF_PAGE
from src.care_office.care_office.staging.collection import RowState
from src.care_office.care_office.store.file_storage import UploadedFile


@pytest.fixture()
def registry(store):
    store.seed("staff", {"id": "s1", "name": "Ann Lee", "email": "ann@example.com", "status": "active", "drivers_license": 1})
    store.seed(
        "staff_training",
        {"id": "t1", "staff_id": "s1", "title": "CPR", "date_completed": datetime(2023, 5, 1)},
        {"id": "t2", "staff_id": "s1", "title": "Manual Handling", "date_completed": datetime(2024, 2, 1)},
        {"id": "t3", "staff_id": "other", "title": "Not mine"},
    )
    store.seed("houses", {"id": "h1", "name": "Elm House", "status": "active", "capacity": 4})
    return PageRegistry(store, [STAFF_PAGE, PARTICIPANT_PAGE, HOUSE_PAGE])


def test_open_loads_record_and_children(registry):
    page = registry.open("staff", "s1")

    assert page.entity_name == "Ann Lee"
    assert page.form["drivers_license"] is True
    assert page.form["ndis_code_of_conduct"] is False
    assert page.form["phone"] == ""
    assert [r["id"] for r in page.children["training"]] == ["t2", "t1"]
    assert page.is_dirty is False
    assert registry.get(page.token) is page
    assert len(registry) == 1


def test_open_unknown_record_or_kind(registry):
    with pytest.raises(NotFoundError):
        registry.open("staff", "missing")
    with pytest.raises(ValidationError):
        registry.open("timesheet", "s1")


def test_form_edits_mark_page_dirty_until_reverted(registry):
    page = registry.open("staff", "s1")

    page.set_fields({"phone": "0400 000 000"})
    assert page.is_dirty
    page.set_fields({"phone": ""})
    assert page.is_dirty is False

    with pytest.raises(ValidationError):
        page.set_fields({"salary": 1})


def test_close_reports_discarded_changes(registry):
    page = registry.open("staff", "s1")
    SectionEditor(page, "training").add({"title": "First Aid"})

    assert registry.close(page.token) is True
    with pytest.raises(NotFoundError):
        registry.get(page.token)


def test_discard_changes_restores_original(registry):
    page = registry.open("staff", "s1")
    page.set_fields({"notes": "x"})
    SectionEditor(page, "training").delete("t1")
    page.select_photo(UploadedFile("me.jpg", b"jpg"))

    page.discard_changes()

    assert page.is_dirty is False
    assert page.form is page.original


def test_editor_shows_staged_rows_in_place(registry):
    page = registry.open("staff", "s1")
    editor = SectionEditor(page, "training")

    editor.edit("t2", {"category": "Safety"})
    editor.edit("t2", {"provider": "Red Cross"})
    editor.delete("t1")
    temp_id = editor.add({"title": "First Aid"})

    rows = editor.rows()
    assert [(r.key, r.state) for r in rows] == [
        ("t2", RowState.PENDING_UPDATE),
        ("t1", RowState.PENDING_DELETE),
        (temp_id, RowState.DRAFT),
    ]
    assert rows[0].data["category"] == "Safety"
    assert rows[0].data["provider"] == "Red Cross"
    assert dict(page.pending.slice("training").to_delete[0].meta) == {"label": '"CPR"'}

    editor.cancel_delete("t1")
    editor.cancel_update("t2")
    editor.delete(temp_id)
    assert page.pending.has_changes() is False


def test_editor_rejects_bad_input(registry):
    page = registry.open("staff", "s1")

    with pytest.raises(StagingError):
        SectionEditor(page, "medications")
    with pytest.raises(ValidationError):
        SectionEditor(page, "staff_compliance").add({"compliance_name": "CPR", "file": UploadedFile("a.pdf", b"")})
    with pytest.raises(NotFoundError):
        SectionEditor(page, "training").edit("nope", {"title": "x"})


def test_house_page_has_no_photo(registry):
    page = registry.open("house", "h1")

    assert page.form["capacity"] == 4
    with pytest.raises(ValidationError):
        page.clear_photo()


def test_numeric_text_matches_the_stored_number(registry, store, storage):
    page = registry.open("house", "h1")

    page.set_fields({"capacity": "4"})
    assert page.form["capacity"] == 4
    assert page.is_dirty is False

    page.set_fields({"capacity": "5.0"})
    store.calls.clear()
    BatchSaveOrchestrator(store, storage, ActivityLogger(store)).save(page, notifier=ToastCollector())

    assert store.mutations() == [("update", "houses", "h1", {"capacity": 5})]
    assert [row["description"] for row in store.activity()] == ['Updated capacity from "4" to "5"']


def test_sync_reloads_only_stale_sections(registry, store):
    page = registry.open("staff", "s1")
    store.seed("staff_training", {"id": "t9", "staff_id": "s1", "title": "New", "date_completed": datetime(2025, 1, 1)})

    assert registry.sync(page) == []
    page.bump(["training"])
    assert registry.sync(page) == ["training"]
    assert page.children["training"][0]["id"] == "t9"
    assert page.stale_sections() == []


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_idle_sessions_are_evicted(store):
    store.seed("staff", {"id": "s1", "name": "Ann Lee", "status": "active"})
    clock = _Clock()
    registry = PageRegistry(store, [STAFF_PAGE], idle_ttl=60, clock=clock)

    abandoned = [registry.open("staff", "s1") for _ in range(50)]
    kept = registry.open("staff", "s1")
    clock.now += 45
    registry.get(kept.token)
    clock.now += 30

    fresh = registry.open("staff", "s1")

    assert len(registry) == 2
    assert registry.get(kept.token) is kept
    assert registry.get(fresh.token) is fresh
    with pytest.raises(NotFoundError):
        registry.get(abandoned[0].token)


def test_saving_session_is_not_evicted(store):
    store.seed("staff", {"id": "s1", "name": "Ann Lee", "status": "active"})
    clock = _Clock()
    registry = PageRegistry(store, [STAFF_PAGE], idle_ttl=60, clock=clock)
    page = registry.open("staff", "s1")
    page.saving = True

    clock.now += 3600

    assert registry.get(page.token) is page


def test_eviction_can_be_disabled(store):
    store.seed("staff", {"id": "s1", "name": "Ann Lee", "status": "active"})
    clock = _Clock()
    registry = PageRegistry(store, [STAFF_PAGE], idle_ttl=None, clock=clock)
    page = registry.open("staff", "s1")

    clock.now += 10**6

    assert registry.get(page.token) is page
