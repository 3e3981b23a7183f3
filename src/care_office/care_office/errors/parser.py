"""Turn store and storage failures into user-facing messages.

Codes from both backends are recognised: MySQL error numbers (what
``MySQLRecordStore`` reports) and the PostgreSQL/PostgREST codes the hosted
backend reported, so records exported from it parse the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..core.enums import Severity


@dataclass(frozen=True)
class ParsedError:
    title: str
    description: str
    severity: Severity = Severity.ERROR
    retryable: bool = True
    field: Optional[str] = None


GENERIC = ParsedError("An error occurred", "Something went wrong. Please try again.")

_DUPLICATE = {"1062", "23505"}
_CHECK = {"3819", "23514"}
_FOREIGN_KEY = {"1451", "1452", "23503"}
_NOT_NULL = {"1048", "1364", "23502"}
_TOO_LONG = {"1406", "22001"}
_MISSING_OBJECT = {"404", "NoSuchKey"}
_INTEGRITY = {"23000"}
_PERMISSION = {"1044", "1045", "1142", "42501"}
_ACCESS = {"PGRST116"}
_CONNECTION = {"2002", "2003", "2006", "2013"}

# (substrings, title, description, severity)
_MESSAGE_RULES = (
    (
        ("failed to fetch", "networkerror", "network request failed"),
        "Connection failed",
        "Unable to reach the server. Please check your internet connection and try again.",
        Severity.ERROR,
    ),
    (
        ("can't reach database", "database server", "connection refused", "can't connect"),
        "Database unavailable",
        "Unable to connect to the database. Please try again in a moment.",
        Severity.ERROR,
    ),
    (
        ("timed out", "timeout"),
        "Request timed out",
        "The operation took too long to complete. Please try again.",
        Severity.ERROR,
    ),
    (
        ("server has closed the connection", "connection closed", "lost connection", "server has gone away"),
        "Connection lost",
        "The connection to the server was lost. Please try again.",
        Severity.ERROR,
    ),
    (
        ("max client connections", "connection pool", "too many connections"),
        "Server busy",
        "The server is currently busy. Please wait a moment and try again.",
        Severity.ERROR,
    ),
    (
        ("jwt", "token"),
        "Session expired",
        "Your session has expired. Please refresh the page and try again.",
        Severity.WARNING,
    ),
)


def _code_and_message(error: Any) -> tuple[str, str]:
    if isinstance(error, dict):
        code = error.get("code") or error.get("error_code") or ""
        message = error.get("message") or error.get("error") or ""
        return str(code), str(message)
    code = getattr(error, "code", None) or getattr(error, "errno", None) or ""
    message = getattr(error, "message", None) or getattr(error, "msg", None) or str(error)
    return str(code), str(message)


def _by_code(code: str, message: str) -> Optional[ParsedError]:
    lowered = message.lower()
    if code in _DUPLICATE:
        if "email" in lowered:
            return ParsedError(
                "Email already in use",
                "This email address is already assigned to another record. Please use a different email.",
                retryable=False,
                field="email",
            )
        return ParsedError(
            "Duplicate entry",
            "This record already exists. Please check your data and try again.",
            retryable=False,
        )
    if code in _CHECK:
        if "email_required" in lowered:
            return ParsedError(
                "Email is required",
                "Email is required when status is Active or Inactive. Please add an email address.",
                retryable=False,
                field="email",
            )
        return ParsedError(
            "Invalid data",
            "The data provided does not meet the required constraints. Please check your input.",
            retryable=False,
        )
    if code in _FOREIGN_KEY:
        return ParsedError(
            "Related record not found",
            "The referenced record does not exist. Please check your selection and try again.",
            retryable=False,
        )
    if code in _NOT_NULL:
        return ParsedError(
            "Required field missing",
            "A required field is missing. Please fill in all required fields.",
            retryable=False,
        )
    if code in _TOO_LONG:
        return ParsedError(
            "Value too long",
            "One of the values is longer than the field allows. Please shorten it and try again.",
            retryable=False,
        )
    if code in _MISSING_OBJECT:
        return ParsedError(
            "File not found",
            "The file no longer exists in storage. Refresh the page and try again.",
            retryable=False,
        )
    if code in _INTEGRITY:
        return ParsedError(
            "Data integrity error",
            "The data violates database constraints. Please check your input and try again.",
            retryable=False,
        )
    if code in _PERMISSION:
        return ParsedError("Permission denied", "You do not have permission to perform this action.", retryable=False)
    if code in _ACCESS:
        return ParsedError("Access denied", "You do not have permission to access this resource.", retryable=False)
    if code in _CONNECTION:
        return ParsedError("Database unavailable", "Unable to connect to the database. Please try again in a moment.")
    return None


def parse_store_error(error: Any) -> ParsedError:
    """Classify a store/storage error (exception or ``{code, message}`` dict)."""
    if not error:
        return GENERIC

    code, message = _code_and_message(error)
    parsed = _by_code(code, message) if code else None
    if parsed:
        return parsed

    lowered = message.lower()
    for needles, title, description, severity in _MESSAGE_RULES:
        if any(n in lowered for n in needles):
            return ParsedError(title, description, severity=severity)

    return ParsedError(
        "An error occurred",
        message or "Something went wrong. Please try again or contact support if the issue persists.",
    )
