from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..activity.logger import normalize_value
from .changeset import PendingChangeSet


def form_diff(current: Mapping[str, Any], original: Mapping[str, Any]) -> dict[str, tuple[Any, Any]]:
    """``{field: (original, current)}`` over the union of both key sets.

    ``''``, ``None`` and a missing key are equivalent.
    """
    diff: dict[str, tuple[Any, Any]] = {}
    for key in dict.fromkeys([*original, *current]):
        old, new = original.get(key), current.get(key)
        if normalize_value(old) != normalize_value(new):
            diff[key] = (old, new)
    return diff


@dataclass(frozen=True)
class DirtyState:
    is_dirty: bool
    form_changed: bool
    has_pending_child_changes: bool
    form_diff: Mapping[str, tuple[Any, Any]] = field(default_factory=dict)


def dirty_state(
    current: Mapping[str, Any],
    original: Mapping[str, Any],
    pending: Optional[PendingChangeSet],
    *,
    photo_dirty: bool = False,
) -> DirtyState:
    diff = form_diff(current, original)
    pending_changes = bool(pending and pending.has_changes())
    return DirtyState(
        is_dirty=bool(diff) or pending_changes or photo_dirty,
        form_changed=bool(diff),
        has_pending_child_changes=pending_changes,
        form_diff=diff,
    )


def is_dirty(
    current: Mapping[str, Any],
    original: Mapping[str, Any],
    pending: Optional[PendingChangeSet],
    *,
    photo_dirty: bool = False,
) -> bool:
    return dirty_state(current, original, pending, photo_dirty=photo_dirty).is_dirty


class DirtyTracker:
    """Memoized :func:`dirty_state`, recomputed only when an input object changes.

    Inputs are compared by identity, which is sound because form data,
    snapshots and change sets are always replaced, never mutated.
    """

    def __init__(self):
        self._inputs: Optional[tuple] = None
        self._state: Optional[DirtyState] = None
        self.computations = 0

    def _same_inputs(self, inputs: tuple) -> bool:
        if self._inputs is None:
            return False
        *objects, photo_dirty = inputs
        *cached, cached_photo = self._inputs
        return photo_dirty == cached_photo and all(a is b for a, b in zip(objects, cached))

    def compute(
        self,
        current: Mapping[str, Any],
        original: Mapping[str, Any],
        pending: Optional[PendingChangeSet],
        *,
        photo_dirty: bool = False,
    ) -> DirtyState:
        inputs = (current, original, pending, photo_dirty)
        if self._state is None or not self._same_inputs(inputs):
            self._state = dirty_state(current, original, pending, photo_dirty=photo_dirty)
            self._inputs = inputs
            self.computations += 1
        return self._state
