from __future__ import annotations

from ..common import validators
from ..core.constants import STAFF_BUCKET
from ..core.enums import EntityType, PageKind, RecordStatus
from ..pages.definition import PageDefinition, PhotoSupport
from ..saving.sections import FileSupport, SectionSpec
from ..saving.validation import FieldFormat, RequiredWhen, status_in

CHECKLIST_ITEMS = (
    "ndis_worker_screening_check",
    "ndis_orientation_module",
    "ndis_code_of_conduct",
    "ndis_infection_control_training",
    "drivers_license",
    "comprehensive_car_insurance",
)

FORM_FIELDS = (
    "name",
    "email",
    "phone",
    "date_of_birth",
    "address",
    "hobbies",
    "allergies",
    "emergency_contact_name",
    "emergency_contact_phone",
    "department_id",
    "employment_type_id",
    "manager_id",
    "hire_date",
    "separation_date",
    "availability",
    "notes",
    "status",
    *(name for item in CHECKLIST_ITEMS for name in (item, f"{item}_expiry")),
)

_LISTED = status_in(RecordStatus.ACTIVE, RecordStatus.INACTIVE)

STAFF_PAGE = PageDefinition(
    kind=PageKind.STAFF,
    table="staff",
    entity_type=EntityType.STAFF,
    form_fields=FORM_FIELDS,
    boolean_fields=frozenset(CHECKLIST_ITEMS),
    photo=PhotoSupport(bucket=STAFF_BUCKET),
    success_message="Staff member updated successfully",
    formats=(
        FieldFormat("email", validators.email),
        FieldFormat("phone", validators.phone),
        FieldFormat("emergency_contact_phone", validators.phone),
    ),
    rules=(
        RequiredWhen(
            "name",
            "Name",
            _LISTED,
            message="Name is required",
            description="Active and inactive staff members must have a name.",
        ),
        RequiredWhen(
            "email",
            "Email",
            _LISTED,
            message="Email is required when status is Active or Inactive",
            description="Please enter an email address before changing the status.",
        ),
    ),
    sections=(
        SectionSpec(
            name="staff_compliance",
            table="staff_compliance",
            parent_key="staff_id",
            noun="compliance requirement",
            fields=("compliance_name", "completion_date", "expiry_date", "status"),
            title_field="compliance_name",
            required=("compliance_name",),
            defaults={"status": "Complete"},
        ),
        SectionSpec(
            name="training",
            table="staff_training",
            parent_key="staff_id",
            noun="training",
            fields=("title", "category", "description", "provider", "date_completed", "expiry_date"),
            title_field="title",
            required=("title",),
            files=FileSupport(bucket=STAFF_BUCKET, folder="training"),
            order_by=("-date_completed",),
        ),
        SectionSpec(
            name="documents",
            table="staff_documents",
            parent_key="staff_id",
            noun="document",
            fields=(),
            title_field="file_name",
            files=FileSupport(bucket=STAFF_BUCKET, folder="documents", required=True),
            add_verb="Uploaded",
            order_by=("-created_at",),
        ),
    ),
)
