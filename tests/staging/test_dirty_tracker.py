from __future__ import annotations

from datetime import date

import pytest

from src.care_office.care_office.core.exceptions import StagingError
from src.care_office.care_office.staging.changeset import PendingChangeSet
from src.care_office.care_office.staging.dirty import DirtyTracker, form_diff, is_dirty


def test_empty_values_are_equivalent():
    original = {"name": "Ann", "phone": None, "notes": ""}
    current = {"name": "Ann", "phone": "", "notes": None, "hobbies": ""}
    assert form_diff(current, original) == {}
    assert not is_dirty(current, original, PendingChangeSet.empty(["documents"]))


def test_dates_compare_by_iso_text():
    assert form_diff({"hire_date": "2024-01-05"}, {"hire_date": date(2024, 1, 5)}) == {}


def test_field_change_makes_page_dirty():
    assert is_dirty({"name": "Bob"}, {"name": "Ann"}, None)


def test_pending_child_change_makes_page_dirty():
    pending = PendingChangeSet.empty(["documents", "training"])
    coll, _ = pending.slice("training").add_draft({"title": "CPR"})
    pending = pending.replace("training", coll)

    assert is_dirty({"name": "Ann"}, {"name": "Ann"}, pending)
    assert pending.non_empty() == ["training"]
    assert pending.cleared().has_changes() is False


def test_photo_flag_is_ored_in():
    assert is_dirty({}, {}, None, photo_dirty=True)


def test_unknown_slice_raises():
    with pytest.raises(StagingError):
        PendingChangeSet.empty(["documents"]).slice("goals")


def test_replace_with_same_collection_keeps_identity():
    pending = PendingChangeSet.empty(["documents"])
    assert pending.replace("documents", pending.slice("documents")) is pending


def test_tracker_recomputes_only_when_an_input_changes():
    tracker = DirtyTracker()
    form = {"name": "Ann"}
    original = {"name": "Ann"}
    pending = PendingChangeSet.empty(["documents"])

    first = tracker.compute(form, original, pending)
    second = tracker.compute(form, original, pending)
    assert first is second
    assert tracker.computations == 1

    changed = tracker.compute({"name": "Bob"}, original, pending)
    assert changed.is_dirty and changed.form_changed
    assert tracker.computations == 2

    tracker.compute({"name": "Bob"}, original, pending, photo_dirty=True)
    assert tracker.computations == 3
