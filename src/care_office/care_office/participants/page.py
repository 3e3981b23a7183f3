from __future__ import annotations

from typing import Any, Mapping

from ..common.datetime_utils import coerce_date
from ..common import validators
from ..common.validators import is_blank
from ..core.constants import PARTICIPANT_BUCKET
from ..core.enums import EntityType, PageKind, RecordStatus
from ..pages.definition import PageDefinition, PhotoSupport
from ..saving.sections import FileSupport, SectionSpec
from ..saving.validation import FieldFormat, RequiredWhen, status_in, truthy

FORM_FIELDS = (
    "name",
    "email",
    "phone",
    "date_of_birth",
    "address",
    "ndis_number",
    "house_id",
    "status",
    "support_level",
    "support_coordinator",
    "primary_diagnosis",
    "secondary_diagnosis",
    "allergies",
    "general_notes",
    "mtmp_required",
    "mtmp_details",
)


def _shift_note_label(data: Mapping[str, Any]) -> str:
    day = coerce_date(data.get("shift_date"))
    if day is None:
        return "for unknown date"
    text = f"for {day.day} {day:%b %Y}"
    if not is_blank(data.get("shift_time")):
        text += f" at {data['shift_time']}"
    return text


def _named(name_field: str, id_field: str, noun: str, detail_field: str = ""):
    """Label by a joined display name when the row carries one, else by id."""

    def label(data: Mapping[str, Any]) -> str:
        value = data.get(name_field) or data.get(id_field)
        text = f'"{value}"' if not is_blank(value) else f'"Unknown {noun}"'
        if detail_field and not is_blank(data.get(detail_field)):
            text += f" ({data[detail_field]})"
        return text

    return label


def _progress_label(data: Mapping[str, Any]) -> str:
    note = str(data.get("progress_note") or "").strip()
    if not note:
        return '"Unknown progress note"'
    if len(note) > 60:
        note = note[:57] + "..."
    return f'"{note}"'


_LISTED = status_in(RecordStatus.ACTIVE, RecordStatus.INACTIVE)

PARTICIPANT_PAGE = PageDefinition(
    kind=PageKind.PARTICIPANT,
    table="participants",
    entity_type=EntityType.PARTICIPANT,
    form_fields=FORM_FIELDS,
    boolean_fields=frozenset({"mtmp_required"}),
    photo=PhotoSupport(bucket=PARTICIPANT_BUCKET),
    success_message="Participant updated successfully",
    formats=(
        FieldFormat("email", validators.email),
        FieldFormat("phone", validators.phone),
    ),
    rules=(
        RequiredWhen(
            "name",
            "Name",
            _LISTED,
            message="Name is required",
            description="Active and inactive participants must have a name.",
        ),
        RequiredWhen(
            "email",
            "Email",
            _LISTED,
            message="Email is required when status is Active or Inactive",
            description="Please enter an email address before changing the status.",
        ),
        RequiredWhen(
            "mtmp_details",
            "Mealtime management details",
            truthy("mtmp_required"),
            message="Mealtime management details are required",
            description="Describe the mealtime management plan or untick the requirement.",
        ),
    ),
    sections=(
        SectionSpec(
            name="documents",
            table="participant_documents",
            parent_key="participant_id",
            noun="document",
            fields=(),
            title_field="file_name",
            files=FileSupport(bucket=PARTICIPANT_BUCKET, folder="documents", required=True),
            add_verb="Uploaded",
            order_by=("-created_at",),
        ),
        SectionSpec(
            name="medications",
            table="participant_medications",
            parent_key="participant_id",
            noun="medication",
            fields=("medication_id", "medication_name", "dosage", "frequency", "is_active"),
            title_field="medication_name",
            required=("medication_id",),
            defaults={"is_active": True},
            label_fn=_named("medication_name", "medication_id", "medication", "dosage"),
        ),
        SectionSpec(
            name="service_providers",
            table="participant_providers",
            parent_key="participant_id",
            noun="service provider",
            fields=("provider_name", "provider_type", "provider_description", "is_active"),
            title_field="provider_name",
            detail_field="provider_type",
            required=("provider_name",),
            defaults={"is_active": True},
        ),
        SectionSpec(
            name="shift_notes",
            table="shift_notes",
            parent_key="participant_id",
            noun="shift note",
            fields=("shift_date", "shift_time", "staff_id", "full_note", "tags"),
            title_field="shift_date",
            required=("shift_date", "full_note"),
            order_by=("-shift_date", "-shift_time"),
            label_fn=_shift_note_label,
        ),
        SectionSpec(
            name="goals",
            table="participant_goals",
            parent_key="participant_id",
            noun="goal",
            fields=("goal_type", "description", "is_active"),
            title_field="goal_type",
            detail_field="description",
            required=("goal_type",),
            defaults={"is_active": True},
        ),
        SectionSpec(
            name="goal_progress",
            table="participant_goal_progress",
            parent_key="participant_id",
            noun="progress note",
            fields=("goal_id", "progress_note"),
            title_field="progress_note",
            required=("goal_id", "progress_note"),
            references={"goal_id": "goals"},
            order_by=("-created_at",),
            label_fn=_progress_label,
        ),
        SectionSpec(
            name="funding",
            table="participant_funding",
            parent_key="participant_id",
            noun="funding",
            fields=(
                "funding_source_id",
                "funding_source_name",
                "funding_type_id",
                "funding_type_name",
                "code",
                "invoice_recipient",
                "allocated_amount",
                "used_amount",
                "remaining_amount",
                "status",
                "end_date",
                "notes",
            ),
            title_field="funding_source_name",
            required=("funding_source_id", "allocated_amount"),
            defaults={"used_amount": 0, "status": "Active"},
            label_fn=_named("funding_source_name", "funding_source_id", "funding", "funding_type_name"),
        ),
        SectionSpec(
            name="contacts",
            table="participant_contacts",
            parent_key="participant_id",
            noun="contact",
            fields=("contact_name", "contact_type_id", "contact_type_name", "phone", "email", "address", "notes", "is_active"),
            title_field="contact_name",
            detail_field="contact_type_name",
            required=("contact_name",),
            defaults={"is_active": True},
        ),
    ),
)
