from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..common.datetime_utils import now_local, to_iso
from ..core.constants import DEFAULT_ACTIVITY_LIMIT, DESCRIPTION_VALUE_MAX, SYSTEM_FIELDS
from ..core.enums import ActivityType, EntityType
from ..store.repository import RecordStore
from .model import ActivityEntry, FieldChange

logger = logging.getLogger(__name__)

FIELD_LABELS = {
    "name": "name",
    "email": "email address",
    "phone": "phone number",
    "address": "address",
    "date_of_birth": "date of birth",
    "ndis_number": "NDIS number",
    "house_id": "house assignment",
    "photo_url": "profile photo",
    "is_active": "status",
    "support_level": "support level",
    "support_coordinator": "support coordinator",
    "primary_diagnosis": "primary diagnosis",
    "secondary_diagnosis": "secondary diagnosis",
    "allergies": "allergies",
    "general_notes": "notes",
    "department_id": "department",
    "employment_type_id": "employment type",
    "hire_date": "hire date",
    "separation_date": "separation date",
    "availability": "availability",
    "mtmp_required": "mealtime management plan",
    "mtmp_details": "mealtime management details",
}


def normalize_value(value: Any) -> Any:
    """``None``, ``''`` and missing are the same "empty" value; dates compare as ISO text."""
    if value is None or value == "":
        return None
    return to_iso(value)


def detect_changes(old: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, FieldChange]:
    """Fields of ``new`` whose normalized value differs from ``old``."""
    changes: dict[str, FieldChange] = {}
    for key, new_value in new.items():
        if key in SYSTEM_FIELDS:
            continue
        old_value = old.get(key)
        if normalize_value(old_value) != normalize_value(new_value):
            changes[key] = FieldChange(old=old_value, new=new_value)
    return changes


def format_value(value: Any) -> str:
    if value is None or value == "":
        return "(empty)"
    if isinstance(value, bool):
        return "Active" if value else "Inactive"
    text = str(to_iso(value))
    if len(text) > DESCRIPTION_VALUE_MAX:
        return text[: DESCRIPTION_VALUE_MAX - 3] + "..."
    return text


def describe(
    activity_type: ActivityType,
    entity_type: EntityType,
    changes: Optional[Mapping[str, FieldChange]] = None,
    custom_description: Optional[str] = None,
) -> str:
    if custom_description:
        return custom_description

    noun = entity_type.value.replace("_", " ")
    if activity_type == ActivityType.CREATE:
        return f"Created new {noun}"
    if activity_type == ActivityType.DELETE:
        return f"Deleted {noun}"
    if activity_type != ActivityType.UPDATE or not changes:
        return f"Updated {noun}"

    fields = [k for k, c in changes.items() if k not in SYSTEM_FIELDS and c.old != c.new]
    if not fields:
        return f"Updated {noun}"

    labels = [FIELD_LABELS.get(k, k) for k in fields]
    if len(fields) == 1:
        field = fields[0]
        if field == "photo_url":
            return "Updated profile photo"
        change = changes[field]
        return f'Updated {labels[0]} from "{format_value(change.old)}" to "{format_value(change.new)}"'
    if len(fields) == 2:
        return f"Updated {labels[0]} and {labels[1]}"

    remaining = len(fields) - 2
    return f"Updated {labels[0]}, {labels[1]} and {remaining} other field{'s' if remaining > 1 else ''}"


class ActivityLogger:
    """Audit trail writer.

    Writes are best effort: a failing insert is logged and swallowed so that
    it never aborts the caller's save flow.
    """

    TABLE = "activity_log"

    def __init__(self, store: RecordStore):
        self._store = store

    def log_activity(
        self,
        *,
        activity_type: ActivityType,
        entity_type: EntityType,
        entity_id: str,
        entity_name: Optional[str] = None,
        user_name: Optional[str] = None,
        changes: Optional[Mapping[str, FieldChange]] = None,
        custom_description: Optional[str] = None,
    ) -> bool:
        description = describe(activity_type, entity_type, changes, custom_description)
        metadata = None
        if changes:
            metadata = {
                "changes": {k: {"old": to_iso(c.old), "new": to_iso(c.new)} for k, c in changes.items()}
            }

        try:
            self._store.create(
                self.TABLE,
                {
                    "activity_type": activity_type.value,
                    "entity_type": entity_type.value,
                    "entity_id": entity_id,
                    "entity_name": entity_name or None,
                    "description": description,
                    "user_name": user_name or None,
                    "metadata": metadata,
                    "created_at": now_local(),
                },
            )
        except Exception:
            logger.exception("Failed to log activity %s on %s %s", activity_type.value, entity_type.value, entity_id)
            return False
        return True

    def recent(
        self,
        *,
        entity_type: Optional[EntityType] = None,
        entity_id: Optional[str] = None,
        limit: int = DEFAULT_ACTIVITY_LIMIT,
    ) -> list[ActivityEntry]:
        eq: dict[str, Any] = {}
        if entity_type is not None:
            eq["entity_type"] = entity_type.value
        if entity_id is not None:
            eq["entity_id"] = entity_id
        rows = self._store.query(self.TABLE, eq=eq, order_by=("-created_at",), limit=int(limit))
        return [ActivityEntry.from_row(r) for r in rows]
