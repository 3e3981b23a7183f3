from __future__ import annotations

from flask import Flask, request

from ..common.http import ok
from ..container import Container
from ..core.constants import DEFAULT_ACTIVITY_LIMIT
from ..core.enums import EntityType
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/activity", methods=["GET"], endpoint="recent_activity")
    def recent_activity():
        args = request.args
        try:
            entity_type = EntityType(args["entity_type"]) if args.get("entity_type") else None
            limit = int(args.get("limit", DEFAULT_ACTIVITY_LIMIT))
        except ValueError:
            raise ValidationError("Invalid activity filter") from None
        if not 0 < limit <= 200:
            raise ValidationError("limit must be between 1 and 200")

        entries = container.activity.recent(
            entity_type=entity_type,
            entity_id=args.get("entity_id") or None,
            limit=limit,
        )
        return ok([e.as_dict() for e in entries])
