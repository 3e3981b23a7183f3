from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional

from ..common.datetime_utils import coerce_date, to_iso
from ..core.constants import UNASSIGNED_LABEL
from ..core.enums import ShiftStatus


@dataclass(frozen=True)
class StaffShift:
    """A rostered shift, decorated with the derived values the board shows."""

    id: str
    staff_id: Optional[str]
    shift_date: date
    end_date: date
    start_time: str
    end_time: str
    house_id: Optional[str] = None
    house_name: Optional[str] = None
    shift_type: Optional[str] = None
    status: str = ShiftStatus.SCHEDULED.value
    notes: Optional[str] = None
    staff_name: str = UNASSIGNED_LABEL
    duration_hours: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any], *, staff_name: Optional[str] = None, house_name: Optional[str] = None, duration_hours: float = 0.0) -> "StaffShift":
        shift_date = coerce_date(row["shift_date"])
        return cls(
            id=str(row["id"]),
            staff_id=row.get("staff_id"),
            shift_date=shift_date,
            end_date=coerce_date(row.get("end_date")) or shift_date,
            start_time=str(to_iso(row["start_time"])),
            end_time=str(to_iso(row["end_time"])),
            house_id=row.get("house_id"),
            house_name=house_name,
            shift_type=row.get("shift_type"),
            status=row.get("status") or ShiftStatus.SCHEDULED.value,
            notes=row.get("notes"),
            staff_name=staff_name or UNASSIGNED_LABEL,
            duration_hours=duration_hours,
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status == ShiftStatus.CANCELLED.value

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "staff_name": self.staff_name,
            "shift_date": self.shift_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "house_id": self.house_id,
            "house_name": self.house_name,
            "shift_type": self.shift_type,
            "status": self.status,
            "notes": self.notes,
            "duration_hours": self.duration_hours,
        }


@dataclass(frozen=True)
class LeaveBlock:
    """Approved leave shown across the roster days it covers (inclusive)."""

    id: str
    staff_id: str
    start_date: date
    end_date: date
    leave_type: Optional[str] = None
    staff_name: str = UNASSIGNED_LABEL

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "staff_name": self.staff_name,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "leave_type": self.leave_type,
        }


@dataclass(frozen=True)
class CalendarCell:
    day: date
    shifts: tuple[StaffShift, ...] = ()
    locations: Mapping[str, tuple[StaffShift, ...]] = field(default_factory=dict)
    leave: tuple[LeaveBlock, ...] = ()
    collisions: frozenset[str] = frozenset()

    @property
    def total_hours(self) -> float:
        return round(sum(s.duration_hours for s in self.shifts if not s.is_cancelled), 2)

    def as_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "shifts": [s.as_dict() for s in self.shifts],
            "locations": {name: [s.id for s in shifts] for name, shifts in self.locations.items()},
            "leave": [b.as_dict() for b in self.leave],
            "collisions": sorted(self.collisions),
            "total_hours": self.total_hours,
        }
