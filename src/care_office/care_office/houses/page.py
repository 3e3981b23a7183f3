from __future__ import annotations

from typing import Any, Mapping

from ..common import validators
from ..common.validators import is_blank
from ..core.constants import HOUSE_BUCKET
from ..core.enums import EntityType, PageKind, RecordStatus
from ..pages.definition import PageDefinition
from ..saving.sections import FileSupport, SectionSpec
from ..saving.validation import FieldFormat, RequiredWhen, status_in

FORM_FIELDS = ("name", "address", "phone", "capacity", "status", "notes")


def _assignment_label(data: Mapping[str, Any]) -> str:
    due = data.get("due_date")
    return "without due date" if is_blank(due) else f"due {due}"


HOUSE_PAGE = PageDefinition(
    kind=PageKind.HOUSE,
    table="houses",
    entity_type=EntityType.HOUSE,
    form_fields=FORM_FIELDS,
    number_fields=frozenset({"capacity"}),
    success_message="House updated successfully",
    formats=(
        FieldFormat("phone", validators.phone),
        FieldFormat("capacity", lambda v: validators.numeric(v, "Capacity")),
    ),
    rules=(
        RequiredWhen(
            "name",
            "Name",
            status_in(RecordStatus.ACTIVE),
            message="Name is required",
            description="Active houses must have a name.",
        ),
    ),
    sections=(
        SectionSpec(
            name="documents",
            table="house_files",
            parent_key="house_id",
            noun="document",
            fields=(),
            title_field="file_name",
            files=FileSupport(bucket=HOUSE_BUCKET, folder="documents", required=True),
            add_verb="Uploaded",
            order_by=("-created_at",),
        ),
        SectionSpec(
            name="house_participants",
            table="house_participants",
            parent_key="house_id",
            noun="resident",
            fields=("participant_id", "participant_name", "move_in_date", "is_active"),
            title_field="participant_name",
            required=("participant_id",),
            defaults={"is_active": True},
        ),
        SectionSpec(
            name="house_staff",
            table="house_staff_assignments",
            parent_key="house_id",
            noun="staff assignment",
            fields=("staff_id", "staff_name", "is_primary", "start_date", "end_date", "notes"),
            title_field="staff_name",
            required=("staff_id",),
            defaults={"is_primary": False},
        ),
        SectionSpec(
            name="calendar_events",
            table="house_calendar_events",
            parent_key="house_id",
            noun="calendar event",
            fields=(
                "title",
                "type",
                "description",
                "event_date",
                "start_time",
                "end_time",
                "participant_id",
                "assigned_staff_id",
                "status",
                "location",
                "notes",
            ),
            title_field="title",
            detail_field="event_date",
            required=("title", "event_date"),
            defaults={"status": "scheduled"},
            order_by=("event_date", "start_time"),
        ),
        SectionSpec(
            name="checklists",
            table="house_checklists",
            parent_key="house_id",
            noun="checklist",
            fields=("name", "frequency", "description", "is_global", "master_id"),
            title_field="name",
            detail_field="frequency",
            required=("name", "frequency"),
            defaults={"is_global": False},
        ),
        SectionSpec(
            name="checklist_items",
            table="house_checklist_items",
            parent_key="house_id",
            noun="checklist item",
            fields=("checklist_id", "title", "instructions", "priority", "is_required", "sort_order"),
            title_field="title",
            detail_field="priority",
            required=("checklist_id", "title"),
            defaults={"priority": "medium", "is_required": True, "sort_order": 0},
            references={"checklist_id": "checklists"},
            order_by=("checklist_id", "sort_order"),
        ),
        SectionSpec(
            name="forms",
            table="house_forms",
            parent_key="house_id",
            noun="form",
            fields=("name", "type", "description", "frequency", "is_global", "status"),
            title_field="name",
            detail_field="type",
            required=("name", "type"),
            defaults={"frequency": "once", "is_global": False, "status": "active"},
        ),
        SectionSpec(
            name="form_assignments",
            table="house_form_assignments",
            parent_key="house_id",
            noun="form assignment",
            fields=("form_id", "participant_id", "staff_id", "due_date", "status", "notes"),
            title_field="form_id",
            required=("form_id",),
            defaults={"status": "pending"},
            references={"form_id": "forms"},
            order_by=("due_date",),
            label_fn=_assignment_label,
        ),
        SectionSpec(
            name="resources",
            table="house_resources",
            parent_key="house_id",
            noun="resource",
            fields=("title", "category", "type", "description", "priority", "phone", "address", "notes"),
            title_field="title",
            detail_field="category",
            required=("title", "category"),
            defaults={"priority": "medium"},
            files=FileSupport(bucket=HOUSE_BUCKET, folder="resources"),
        ),
    ),
)
