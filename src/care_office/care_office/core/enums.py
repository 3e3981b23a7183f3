from __future__ import annotations

from enum import Enum


class RecordStatus(str, Enum):
    """Lifecycle status of staff, participant and house records."""

    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"


class PageKind(str, Enum):
    """Detail pages that stage child-entity changes behind a single save."""

    STAFF = "staff"
    PARTICIPANT = "participant"
    HOUSE = "house"


class ActivityType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    ARCHIVE = "archive"
    ACTIVATE = "activate"


class EntityType(str, Enum):
    PARTICIPANT = "participant"
    STAFF = "staff"
    HOUSE = "house"
    SHIFT = "shift"
    SHIFT_NOTE = "shift_note"
    COMPLIANCE = "compliance"
    MEDICATION = "medication"
    DOCUMENT = "document"
    CONTACT = "contact"
    PARTICIPANT_FUNDING = "participant_funding"
    TIMESHEET = "timesheet"
    LEAVE_REQUEST = "leave_request"


class ShiftStatus(str, Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No Show"
    LEAVE_COVER_REQUIRED = "Leave Cover Required"


class RequestStatus(str, Enum):
    """Approval flow status for leave requests and timesheets."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ViewMode(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class Role(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"
