from __future__ import annotations

import re

import pytest

from src.care_office.care_office.core.exceptions import StagingError
from src.care_office.care_office.staging.collection import (
    Draft,
    Persisted,
    RowState,
    StagedCollection,
    compose_visible,
    is_temp_id,
    new_temp_id,
)


def test_temp_id_format():
    temp_id = new_temp_id()
    assert re.fullmatch(r"temp-\d+-[0-9a-z]{7}", temp_id)
    assert is_temp_id(temp_id)
    assert not is_temp_id("8b0c1e9e-0000-4000-8000-000000000000")


def test_drafts_keep_insertion_order_and_edit_in_place():
    c = StagedCollection()
    c, a = c.add_draft({"title": "A"})
    c, b = c.add_draft({"title": "B"})
    c = c.edit_draft(a, {"title": "A2"})

    assert [d.temp_id for d in c.to_add] == [a, b]
    assert c.get_draft(a).data["title"] == "A2"


def test_removed_draft_disappears_everywhere():
    c, temp_id = StagedCollection().add_draft({"title": "A"})
    c = c.queue_delete(temp_id)

    assert c.is_empty()
    with pytest.raises(StagingError):
        c.edit_draft(temp_id, {"title": "x"})


def test_unknown_draft_raises():
    with pytest.raises(StagingError):
        StagedCollection().remove_draft("temp-1-abcdefg")


def test_queue_update_last_write_wins_in_place():
    c = StagedCollection()
    c = c.queue_update("1", {"title": "first"})
    c = c.queue_update("2", {"title": "other"})
    c = c.queue_update("1", {"title": "second"})

    assert [p.id for p in c.to_update] == ["1", "2"]
    assert dict(c.pending_update("1").fields) == {"title": "second"}


def test_delete_drops_pending_update_and_cancel_does_not_restore_it():
    c = StagedCollection().queue_update("1", {"title": "x"})
    c = c.queue_delete(Persisted.from_record({"id": "1", "title": "old"}), {"label": '"old"'})

    assert c.pending_update("1") is None
    assert c.is_pending_delete("1")

    c = c.cancel_delete("1")
    assert c.is_empty()


def test_update_of_pending_delete_is_noop():
    c = StagedCollection().queue_delete("1")
    assert c.queue_update("1", {"title": "x"}) is c


def test_delete_of_draft_object_removes_it():
    c, temp_id = StagedCollection().add_draft({"title": "A"})
    c = c.queue_delete(c.get_draft(temp_id))
    assert c.to_add == ()


def test_operations_never_mutate_the_original():
    original = StagedCollection()
    changed, _ = original.add_draft({"title": "A"})
    assert original.is_empty()
    assert changed.count() == 1


def test_compose_visible_orders_persisted_then_drafts():
    persisted = [{"id": "A", "title": "a"}, {"id": "B", "title": "b"}]
    c = StagedCollection().queue_delete("B")
    c, t1 = c.add_draft({"title": "new"})

    rows = compose_visible(persisted, c)

    assert [(r.key, r.state) for r in rows] == [
        ("A", RowState.NORMAL),
        ("B", RowState.PENDING_DELETE),
        (t1, RowState.DRAFT),
    ]
    assert rows[2].kind == Draft(temp_id=t1, data={}).kind == "draft"


def test_compose_visible_merges_pending_patch():
    c = StagedCollection().queue_update("A", {"title": "patched"})
    (row,) = compose_visible([{"id": "A", "title": "a", "category": "x"}], c)

    assert row.state == RowState.PENDING_UPDATE
    assert row.data["title"] == "patched"
    assert row.data["category"] == "x"
