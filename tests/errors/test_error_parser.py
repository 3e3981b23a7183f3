from __future__ import annotations

import pytest

from src.care_office.care_office.core.enums import Severity
from src.care_office.care_office.core.exceptions import RemoteStoreError, StorageError
from src.care_office.care_office.errors.parser import GENERIC, parse_store_error


def test_duplicate_email_targets_the_email_field():
    parsed = parse_store_error(RemoteStoreError("Duplicate entry 'a@b.co' for key 'staff.uq_staff_email'", code="1062"))

    assert parsed.title == "Email already in use"
    assert parsed.field == "email"
    assert parsed.retryable is False


def test_other_duplicates_are_generic_duplicates():
    parsed = parse_store_error({"code": "23505", "message": "duplicate key value violates unique constraint"})
    assert parsed.title == "Duplicate entry"
    assert parsed.field is None


def test_email_check_constraint():
    parsed = parse_store_error(RemoteStoreError("Check constraint 'staff_email_required' is violated.", code="3819"))
    assert parsed.title == "Email is required"
    assert parsed.field == "email"


@pytest.mark.parametrize(
    "code, title",
    [
        ("1452", "Related record not found"),
        ("1048", "Required field missing"),
        ("23000", "Data integrity error"),
        ("1142", "Permission denied"),
        ("PGRST116", "Access denied"),
        ("2003", "Database unavailable"),
    ],
)
def test_known_codes(code, title):
    assert parse_store_error(RemoteStoreError("x", code=code)).title == title


@pytest.mark.parametrize(
    "message, title, severity",
    [
        ("TypeError: Failed to fetch", "Connection failed", Severity.ERROR),
        ("Query timed out after 30s", "Request timed out", Severity.ERROR),
        ("MySQL server has gone away", "Connection lost", Severity.ERROR),
        ("Too many connections", "Server busy", Severity.ERROR),
        ("JWT expired", "Session expired", Severity.WARNING),
    ],
)
def test_message_heuristics(message, title, severity):
    parsed = parse_store_error(RemoteStoreError(message))
    assert (parsed.title, parsed.severity) == (title, severity)
    assert parsed.retryable


def test_unknown_error_keeps_its_message():
    parsed = parse_store_error(ValueError("widget exploded"))
    assert parsed.title == "An error occurred"
    assert parsed.description == "widget exploded"


def test_empty_error_is_generic():
    assert parse_store_error(None) is GENERIC


@pytest.mark.parametrize(
    "error, title",
    [
        (RemoteStoreError("Data too long for column 'notes' at row 1", code="1406"), "Value too long"),
        ({"code": "22001", "message": "value too long for type character varying(50)"}, "Value too long"),
        (StorageError("Object not found: staff-documents/s1/a.pdf", code="404"), "File not found"),
    ],
)
def test_non_retryable_codes(error, title):
    parsed = parse_store_error(error)
    assert parsed.title == title
    assert parsed.retryable is False
