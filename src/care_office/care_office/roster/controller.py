from __future__ import annotations

import io

from flask import Flask, request, send_file

from ..common.datetime_utils import now_local
from ..common.http import current_actor, json_body, notifier, ok, parse_date_arg, record_json
from ..container import Container
from .export import export_roster


def register(app: Flask, container: Container) -> None:
    roster = container.roster_service

    def _view():
        args = request.args
        return roster.load(
            parse_date_arg(args.get("date"), "date", default=now_local().date()),
            args.get("view", "week"),
            staff_id=args.get("staff_id") or None,
            house_id=args.get("house_id") or None,
            group_by_house=args.get("group_by") == "house",
        )

    @app.route("/api/roster", methods=["GET"], endpoint="roster_board")
    def roster_board():
        return ok(_view().as_dict())

    @app.route("/api/roster/export", methods=["GET"], endpoint="roster_export")
    def roster_export():
        view = _view()
        buf = io.BytesIO(export_roster(view))
        return send_file(
            buf,
            download_name=f"roster_{view.start.isoformat()}_{view.end.isoformat()}.xlsx",
            as_attachment=True,
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )

    @app.route("/api/roster/shifts", methods=["POST"], endpoint="create_shift")
    def create_shift():
        shift = roster.create_shift(data=json_body(), user_name=current_actor().name)
        notifier().success("Shift created")
        return ok(record_json(shift), status=201)

    @app.route("/api/roster/shifts/<shift_id>", methods=["PUT"], endpoint="update_shift")
    def update_shift(shift_id: str):
        shift = roster.update_shift(shift_id, patch=json_body(), user_name=current_actor().name)
        notifier().success("Shift updated")
        return ok(record_json(shift))

    @app.route("/api/roster/shifts/<shift_id>", methods=["DELETE"], endpoint="delete_shift")
    def delete_shift(shift_id: str):
        roster.delete_shift(shift_id, user_name=current_actor().name)
        notifier().success("Shift deleted")
        return ok()
