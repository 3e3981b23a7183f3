from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from ..core.constants import UNASSIGNED_LABEL
from .model import CalendarCell, LeaveBlock, StaffShift


def find_collisions(shifts: Iterable[StaffShift]) -> frozenset[str]:
    """Ids of non-cancelled shifts that share a staff member and a day with another one."""
    by_staff: dict[str, list[str]] = defaultdict(list)
    for s in shifts:
        if s.staff_id and not s.is_cancelled:
            by_staff[s.staff_id].append(s.id)
    return frozenset(i for ids in by_staff.values() if len(ids) > 1 for i in ids)


def _locations(shifts: Sequence[StaffShift], house_names: Sequence[str]) -> dict[str, tuple[StaffShift, ...]]:
    buckets: dict[str, list[StaffShift]] = {name: [] for name in house_names}
    unassigned: list[StaffShift] = []
    for s in shifts:
        if s.house_id is None and not s.house_name:
            unassigned.append(s)
        else:
            buckets.setdefault(s.house_name or str(s.house_id), []).append(s)
    if unassigned:
        buckets[UNASSIGNED_LABEL] = unassigned
    return {name: tuple(items) for name, items in buckets.items()}


def build_roster_grid(
    shifts: Iterable[StaffShift],
    leaves: Iterable[LeaveBlock],
    days: Iterable[date],
    *,
    group_by_house: bool = False,
    houses: Sequence[Mapping[str, Any]] = (),
) -> list[CalendarCell]:
    """One cell per day with its shifts, location buckets, leave and collisions.

    With ``group_by_house`` every house in ``houses`` gets a bucket even on
    days it has no shifts.
    """
    per_day: dict[date, list[StaffShift]] = defaultdict(list)
    for s in shifts:
        per_day[s.shift_date].append(s)
    leave_blocks = list(leaves)
    house_names = [h["name"] for h in houses] if group_by_house else []

    cells = []
    for day in days:
        todays = sorted(per_day.get(day, []), key=lambda s: (s.start_time, s.staff_name))
        cells.append(
            CalendarCell(
                day=day,
                shifts=tuple(todays),
                locations=_locations(todays, house_names),
                leave=tuple(b for b in leave_blocks if b.covers(day)),
                collisions=find_collisions(todays),
            )
        )
    return cells
