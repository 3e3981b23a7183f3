from __future__ import annotations

import logging
from datetime import date
from typing import Any, Mapping, Optional

from ..activity.logger import ActivityLogger
from ..common.datetime_utils import coerce_date, coerce_datetime, now_local
from ..common.validators import require_non_empty
from ..core.enums import ActivityType, EntityType, RequestStatus, Role, ShiftStatus
from ..core.exceptions import AuthorizationError, NotFoundError, RemoteStoreError, ValidationError
from ..store.repository import RecordStore

logger = logging.getLogger(__name__)


def _day_month(value: date) -> str:
    return f"{value.day:02d} {value:%b}"


class RequestService:
    """Leave requests and timesheet submission and approval."""

    def __init__(self, store: RecordStore, activity: ActivityLogger):
        self._store = store
        self._activity = activity

    def _get(self, table: str, request_id: str, label: str) -> dict:
        row = self._store.get(table, request_id)
        if row is None:
            raise NotFoundError(f"{label} {request_id} not found")
        return row

    def _notify(self, staff_id: str, *, kind: str, title: str, body: str, link: str) -> None:
        try:
            staff = self._store.get("staff", staff_id) or {}
            if not staff.get("auth_user_id"):
                return
            self._store.create(
                "notifications",
                {
                    "user_id": staff["auth_user_id"],
                    "type": kind,
                    "title": title,
                    "body": body,
                    "link": link,
                    "created_at": now_local(),
                },
            )
        except RemoteStoreError:
            logger.exception("Failed to notify staff %s (%s)", staff_id, kind)

    # -- leave --------------------------------------------------------------

    def submit_leave(
        self,
        *,
        staff_id: str,
        start_date: date,
        end_date: date,
        reason: str,
        leave_type: Optional[str] = None,
        user_name: Optional[str] = None,
    ) -> dict:
        if end_date < start_date:
            raise ValidationError("End date must be on or after the start date")
        reason = require_non_empty(reason, "Reason")

        record = self._store.create(
            "leave_requests",
            {
                "staff_id": staff_id,
                "start_date": start_date,
                "end_date": end_date,
                "leave_type": leave_type,
                "reason": reason,
                "status": RequestStatus.PENDING.value,
                "created_at": now_local(),
            },
        )
        self._activity.log_activity(
            activity_type=ActivityType.SUBMIT,
            entity_type=EntityType.LEAVE_REQUEST,
            entity_id=str(record["id"]),
            user_name=user_name,
            custom_description=f"Submitted leave request ({_day_month(start_date)} - {_day_month(end_date)} {end_date.year})",
        )
        return record

    def affected_shifts(self, leave: Mapping[str, Any]) -> list[dict]:
        """Non-cancelled shifts of the requester inside the leave window."""
        return self._store.query(
            "staff_shifts",
            eq={"staff_id": leave["staff_id"]},
            neq={"status": ShiftStatus.CANCELLED.value},
            gte={"shift_date": coerce_date(leave["start_date"])},
            lte={"shift_date": coerce_date(leave["end_date"])},
            order_by=("shift_date",),
        )

    def _decide_leave(
        self,
        *,
        current_role: Role,
        admin_staff_id: Optional[str],
        request_id: str,
        status: RequestStatus,
        admin_notes: str,
        user_name: Optional[str],
    ) -> list[str]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can decide leave requests")

        leave = self._get("leave_requests", request_id, "Leave request")
        if leave.get("status") != RequestStatus.PENDING.value:
            raise ValidationError("This leave request has already been decided")
        if status == RequestStatus.APPROVED and admin_staff_id and str(leave["staff_id"]) == str(admin_staff_id):
            raise AuthorizationError("You cannot approve your own leave request")

        covered: list[str] = []
        if status == RequestStatus.APPROVED:
            covered = [str(s["id"]) for s in self.affected_shifts(leave)]

        notes = (admin_notes or "").strip() or None
        self._store.update(
            "leave_requests",
            request_id,
            {"status": status.value, "admin_notes": notes, "updated_at": now_local()},
        )
        for shift_id in covered:
            self._store.update("staff_shifts", shift_id, {"status": ShiftStatus.LEAVE_COVER_REQUIRED.value})

        start, end = coerce_date(leave["start_date"]), coerce_date(leave["end_date"])
        self._activity.log_activity(
            activity_type=ActivityType.APPROVE if status == RequestStatus.APPROVED else ActivityType.REJECT,
            entity_type=EntityType.LEAVE_REQUEST,
            entity_id=request_id,
            user_name=user_name,
            custom_description=f"{status.value.capitalize()} leave request ({_day_month(start)} - {_day_month(end)} {end.year})",
        )
        self._notify(
            str(leave["staff_id"]),
            kind=f"leave_{status.value}",
            title=f"Leave Request {status.value.capitalize()}",
            body=notes
            or f"Your {leave.get('leave_type') or 'leave'} request ({_day_month(start)} - {_day_month(end)} {end.year}) has been {status.value}.",
            link="/staff/leave",
        )
        logger.info("Leave request %s %s; %d shift(s) need cover", request_id, status.value, len(covered))
        return covered

    def approve_leave(
        self,
        *,
        current_role: Role,
        admin_staff_id: Optional[str],
        request_id: str,
        admin_notes: str = "",
        user_name: Optional[str] = None,
    ) -> list[str]:
        """Approve and return the ids of shifts now marked as needing cover."""
        return self._decide_leave(
            current_role=current_role,
            admin_staff_id=admin_staff_id,
            request_id=request_id,
            status=RequestStatus.APPROVED,
            admin_notes=admin_notes,
            user_name=user_name,
        )

    def reject_leave(
        self,
        *,
        current_role: Role,
        admin_staff_id: Optional[str],
        request_id: str,
        admin_notes: str = "",
        user_name: Optional[str] = None,
    ) -> None:
        self._decide_leave(
            current_role=current_role,
            admin_staff_id=admin_staff_id,
            request_id=request_id,
            status=RequestStatus.REJECTED,
            admin_notes=admin_notes,
            user_name=user_name,
        )

    # -- timesheets -----------------------------------------------------------

    def submit_timesheet(
        self,
        *,
        staff_id: str,
        clock_in: Any,
        clock_out: Any,
        shift_id: Optional[str] = None,
        break_minutes: Any = 0,
        notes: str = "",
        user_name: Optional[str] = None,
    ) -> dict:
        started = coerce_datetime(clock_in, "Clock in")
        finished = coerce_datetime(clock_out, "Clock out")
        if started is None or finished is None:
            raise ValidationError("Please enter clock in and clock out times")
        if finished <= started:
            raise ValidationError("Clock out must be after clock in")
        try:
            break_minutes = int(break_minutes or 0)
        except (TypeError, ValueError):
            raise ValidationError("Break minutes must be a whole number") from None
        worked_minutes = (finished - started).total_seconds() // 60
        if break_minutes < 0 or break_minutes >= worked_minutes:
            raise ValidationError("Break must be shorter than the time worked")

        if shift_id:
            shift = self._get("staff_shifts", shift_id, "Shift")
            if str(shift.get("staff_id")) != str(staff_id):
                raise AuthorizationError("You can only submit timesheets for your own shifts")

        record = self._store.create(
            "timesheets",
            {
                "staff_id": staff_id,
                "shift_id": shift_id or None,
                "clock_in": started,
                "clock_out": finished,
                "break_minutes": break_minutes,
                "notes": (notes or "").strip() or None,
                "status": RequestStatus.PENDING.value,
                "created_at": now_local(),
            },
        )
        worked = started.date()
        self._activity.log_activity(
            activity_type=ActivityType.SUBMIT,
            entity_type=EntityType.TIMESHEET,
            entity_id=str(record["id"]),
            user_name=user_name,
            custom_description=f"Submitted timesheet ({_day_month(worked)} {worked.year})",
        )

        try:
            staff = self._store.get("staff", staff_id) or {}
        except RemoteStoreError:
            logger.exception("Failed to load staff %s for timesheet notification", staff_id)
            staff = {}
        if staff.get("manager_id"):
            self._notify(
                str(staff["manager_id"]),
                kind="timesheet_submitted",
                title="New Timesheet Submitted",
                body=f"{staff.get('name') or 'A staff member'} submitted a timesheet for {_day_month(worked)} {worked.year}.",
                link="/employees/timesheets",
            )
        logger.info("Timesheet %s submitted by staff %s", record["id"], staff_id)
        return record

    def _decide_timesheet(
        self,
        *,
        current_role: Role,
        timesheet_id: str,
        status: RequestStatus,
        admin_notes: str,
        user_name: Optional[str],
    ) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can decide timesheets")

        sheet = self._get("timesheets", timesheet_id, "Timesheet")
        if sheet.get("status") != RequestStatus.PENDING.value:
            raise ValidationError("This timesheet has already been decided")

        notes = (admin_notes or "").strip() or None
        self._store.update(
            "timesheets",
            timesheet_id,
            {"status": status.value, "admin_notes": notes, "updated_at": now_local()},
        )
        self._activity.log_activity(
            activity_type=ActivityType.APPROVE if status == RequestStatus.APPROVED else ActivityType.REJECT,
            entity_type=EntityType.TIMESHEET,
            entity_id=timesheet_id,
            user_name=user_name,
            custom_description=f"{status.value.capitalize()} timesheet",
        )
        worked = coerce_date(sheet.get("clock_in"))
        self._notify(
            str(sheet["staff_id"]),
            kind=f"timesheet_{status.value}",
            title=f"Timesheet {status.value}",
            body=notes
            or f"Your timesheet{f' for {_day_month(worked)} {worked.year}' if worked else ''} has been {status.value}.",
            link="/staff/timesheets",
        )

    def approve_timesheet(self, *, current_role: Role, timesheet_id: str, admin_notes: str = "", user_name: Optional[str] = None) -> None:
        self._decide_timesheet(
            current_role=current_role,
            timesheet_id=timesheet_id,
            status=RequestStatus.APPROVED,
            admin_notes=admin_notes,
            user_name=user_name,
        )

    def reject_timesheet(self, *, current_role: Role, timesheet_id: str, admin_notes: str = "", user_name: Optional[str] = None) -> None:
        self._decide_timesheet(
            current_role=current_role,
            timesheet_id=timesheet_id,
            status=RequestStatus.REJECTED,
            admin_notes=admin_notes,
            user_name=user_name,
        )
