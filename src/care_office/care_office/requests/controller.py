from __future__ import annotations

from flask import Flask

from ..common.http import current_actor, json_body, notifier, ok, parse_date_arg, record_json
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    requests = container.request_service

    @app.route("/api/leave", methods=["POST"], endpoint="submit_leave")
    def submit_leave():
        actor = current_actor()
        body = json_body()
        staff_id = body.get("staff_id") or actor.staff_id
        if not staff_id:
            raise ValidationError("Staff member is required")
        record = requests.submit_leave(
            staff_id=str(staff_id),
            start_date=parse_date_arg(body.get("start_date"), "Start date"),
            end_date=parse_date_arg(body.get("end_date"), "End date"),
            reason=body.get("reason", ""),
            leave_type=body.get("leave_type") or None,
            user_name=actor.name,
        )
        notifier().success("Leave request submitted")
        return ok(record_json(record), status=201)

    @app.route("/api/leave/<request_id>/<decision>", methods=["POST"], endpoint="decide_leave")
    def decide_leave(request_id: str, decision: str):
        actor = current_actor()
        notes = json_body().get("admin_notes", "")
        if decision == "approve":
            covered = requests.approve_leave(
                current_role=actor.role,
                admin_staff_id=actor.staff_id,
                request_id=request_id,
                admin_notes=notes,
                user_name=actor.name,
            )
            notifier().success("Leave request approved")
            return ok({"leave_cover_required": covered})
        if decision == "reject":
            requests.reject_leave(
                current_role=actor.role,
                admin_staff_id=actor.staff_id,
                request_id=request_id,
                admin_notes=notes,
                user_name=actor.name,
            )
            notifier().success("Leave request rejected")
            return ok()
        raise ValidationError(f"Unknown decision {decision!r}")

    @app.route("/api/timesheets", methods=["POST"], endpoint="submit_timesheet")
    def submit_timesheet():
        actor = current_actor()
        body = json_body()
        staff_id = body.get("staff_id") or actor.staff_id
        if not staff_id:
            raise ValidationError("Staff member is required")
        record = requests.submit_timesheet(
            staff_id=str(staff_id),
            shift_id=body.get("shift_id") or None,
            clock_in=body.get("clock_in"),
            clock_out=body.get("clock_out"),
            break_minutes=body.get("break_minutes", 0),
            notes=body.get("notes", ""),
            user_name=actor.name,
        )
        notifier().success("Timesheet submitted")
        return ok(record_json(record), status=201)

    @app.route("/api/timesheets/<timesheet_id>/<decision>", methods=["POST"], endpoint="decide_timesheet")
    def decide_timesheet(timesheet_id: str, decision: str):
        actor = current_actor()
        notes = json_body().get("admin_notes", "")
        if decision not in ("approve", "reject"):
            raise ValidationError(f"Unknown decision {decision!r}")
        decide = requests.approve_timesheet if decision == "approve" else requests.reject_timesheet
        decide(current_role=actor.role, timesheet_id=timesheet_id, admin_notes=notes, user_name=actor.name)
        notifier().success(f"Timesheet {decision}d")
        return ok()
