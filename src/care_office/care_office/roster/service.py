from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional

from ..activity.logger import ActivityLogger, detect_changes
from ..common.datetime_utils import coerce_date, parse_hhmm
from ..common.validators import is_blank
from ..core.constants import UNASSIGNED_LABEL
from ..core.enums import ActivityType, EntityType, RequestStatus, ShiftStatus, ViewMode
from ..core.exceptions import NotFoundError, ValidationError
from ..store.repository import RecordStore
from .model import CalendarCell, LeaveBlock, StaffShift
from .overlay import build_roster_grid
from .utils import calculate_duration, days_for, get_date_range

logger = logging.getLogger(__name__)

SHIFT_FIELDS = ("staff_id", "shift_date", "end_date", "start_time", "end_time", "house_id", "shift_type", "status", "notes")


@dataclass(frozen=True)
class RosterView:
    start: date
    end: date
    view_mode: ViewMode
    cells: list[CalendarCell]
    shifts: list[StaffShift]
    leave: list[LeaveBlock]
    houses: list[dict]

    def as_dict(self) -> dict:
        return {
            "start_date": self.start.isoformat(),
            "end_date": self.end.isoformat(),
            "view_mode": self.view_mode.value,
            "days": [c.as_dict() for c in self.cells],
            "houses": self.houses,
            "total_hours": round(sum(c.total_hours for c in self.cells), 2),
        }


class RosterService:
    def __init__(self, store: RecordStore, activity: ActivityLogger):
        self._store = store
        self._activity = activity

    def _names(self, table: str, ids) -> dict[str, str]:
        ids = sorted({i for i in ids if i})
        if not ids:
            return {}
        return {str(r["id"]): r.get("name") for r in self._store.query(table, in_={"id": ids})}

    def _active_houses(self) -> list[dict]:
        rows = self._store.query("houses", eq={"status": "active"}, order_by=("name",))
        return [{"id": str(r["id"]), "name": r["name"]} for r in rows]

    def _decorate(self, rows, staff_names: Mapping[str, str], house_names: Mapping[str, str]) -> list[StaffShift]:
        shifts = []
        for r in rows:
            duration = calculate_duration(r["start_time"], r["end_time"], r.get("shift_date"), r.get("end_date") or r.get("shift_date"))
            shifts.append(
                StaffShift.from_row(
                    r,
                    staff_name=staff_names.get(str(r.get("staff_id"))),
                    house_name=house_names.get(str(r.get("house_id"))),
                    duration_hours=duration,
                )
            )
        return shifts

    def load(
        self,
        current_date: date,
        view_mode: ViewMode | str = ViewMode.WEEK,
        *,
        staff_id: Optional[str] = None,
        house_id: Optional[str] = None,
        group_by_house: bool = False,
    ) -> RosterView:
        start, end = get_date_range(current_date, view_mode)
        eq = {}
        if staff_id:
            eq["staff_id"] = staff_id
        if house_id:
            eq["house_id"] = house_id

        rows = self._store.query(
            "staff_shifts",
            eq=eq,
            gte={"shift_date": start},
            lte={"shift_date": end},
            order_by=("shift_date", "start_time"),
        )
        leave_rows = self._store.query(
            "leave_requests",
            eq={"status": RequestStatus.APPROVED.value, **({"staff_id": staff_id} if staff_id else {})},
            lte={"start_date": end},
            gte={"end_date": start},
        )

        houses = self._active_houses()
        house_names = {h["id"]: h["name"] for h in houses}
        house_names.update(self._names("houses", [r.get("house_id") for r in rows if str(r.get("house_id")) not in house_names]))
        staff_names = self._names("staff", [r.get("staff_id") for r in rows] + [r.get("staff_id") for r in leave_rows])

        shifts = self._decorate(rows, staff_names, house_names)
        leave = [
            LeaveBlock(
                id=str(r["id"]),
                staff_id=str(r["staff_id"]),
                start_date=coerce_date(r["start_date"]),
                end_date=coerce_date(r["end_date"]),
                leave_type=r.get("leave_type"),
                staff_name=staff_names.get(str(r["staff_id"])) or UNASSIGNED_LABEL,
            )
            for r in leave_rows
        ]
        cells = build_roster_grid(
            shifts,
            leave,
            days_for(current_date, view_mode),
            group_by_house=group_by_house,
            houses=houses,
        )
        return RosterView(start, end, ViewMode(view_mode), cells, shifts, leave, houses)

    # -- shift CRUD ---------------------------------------------------------

    @staticmethod
    def _validate(shift: Mapping[str, Any]) -> dict:
        for f, label in (("staff_id", "Staff member"), ("shift_date", "Shift date"), ("start_time", "Start time"), ("end_time", "End time")):
            if is_blank(shift.get(f)):
                raise ValidationError(f"{label} is required")

        shift_date = coerce_date(shift["shift_date"])
        end_date = coerce_date(shift.get("end_date")) or shift_date
        if end_date < shift_date:
            raise ValidationError("End date cannot be before the start date")
        start_time, end_time = parse_hhmm(str(shift["start_time"])[:8]), parse_hhmm(str(shift["end_time"])[:8])
        if end_date == shift_date and start_time == end_time:
            raise ValidationError("Shift must be longer than zero minutes")

        status = shift.get("status") or ShiftStatus.SCHEDULED.value
        try:
            ShiftStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown shift status {status!r}") from None

        out = {k: (None if shift.get(k) == "" else shift.get(k)) for k in SHIFT_FIELDS if k in shift}
        out.update(
            shift_date=shift_date,
            end_date=end_date,
            start_time=start_time.strftime("%H:%M:%S"),
            end_time=end_time.strftime("%H:%M:%S"),
            status=status,
        )
        return out

    def _describe(self, verb: str, shift: Mapping[str, Any]) -> str:
        names = self._names("staff", [shift.get("staff_id")])
        who = names.get(str(shift.get("staff_id"))) or UNASSIGNED_LABEL
        return f"{verb} shift for {who} on {coerce_date(shift['shift_date']).isoformat()}"

    def create_shift(self, *, data: Mapping[str, Any], user_name: Optional[str] = None) -> dict:
        unknown = sorted(set(data) - set(SHIFT_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown shift field(s): {', '.join(unknown)}")
        record = self._store.create("staff_shifts", self._validate(data))
        self._activity.log_activity(
            activity_type=ActivityType.CREATE,
            entity_type=EntityType.SHIFT,
            entity_id=str(record["id"]),
            user_name=user_name,
            custom_description=self._describe("Created", record),
        )
        return record

    def _existing(self, shift_id: str) -> dict:
        row = self._store.get("staff_shifts", shift_id)
        if row is None:
            raise NotFoundError(f"Shift {shift_id} not found")
        return row

    def update_shift(self, shift_id: str, *, patch: Mapping[str, Any], user_name: Optional[str] = None) -> dict:
        unknown = sorted(set(patch) - set(SHIFT_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown shift field(s): {', '.join(unknown)}")
        current = self._existing(shift_id)
        merged = self._validate({**{k: current.get(k) for k in SHIFT_FIELDS}, **patch})
        # Single-day shifts may be stored without an end date.
        baseline = {**current, "end_date": current.get("end_date") or current.get("shift_date")}
        changes = detect_changes(baseline, merged)
        if not changes:
            return current

        self._store.update("staff_shifts", shift_id, {k: c.new for k, c in changes.items()})
        self._activity.log_activity(
            activity_type=ActivityType.UPDATE,
            entity_type=EntityType.SHIFT,
            entity_id=shift_id,
            user_name=user_name,
            changes=changes,
        )
        return {**current, **merged}

    def delete_shift(self, shift_id: str, *, user_name: Optional[str] = None) -> None:
        current = self._existing(shift_id)
        self._store.delete("staff_shifts", shift_id)
        self._activity.log_activity(
            activity_type=ActivityType.DELETE,
            entity_type=EntityType.SHIFT,
            entity_id=shift_id,
            user_name=user_name,
            custom_description=self._describe("Deleted", current),
        )
