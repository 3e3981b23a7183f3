from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Optional

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[\d\s\-\+\(\)]+$")


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: str = ""


_OK = ValidationResult(True)


def is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def required(value: Any, field_name: str) -> ValidationResult:
    if is_blank(value):
        return ValidationResult(False, f"{field_name} is required")
    return _OK


def required_when(value: Any, condition: bool, field_name: str) -> ValidationResult:
    """Like :func:`required`, but only enforced while ``condition`` holds."""
    if not condition:
        return _OK
    return required(value, field_name)


def email(value: Optional[str]) -> ValidationResult:
    if not value or _EMAIL_RE.match(value):
        return _OK
    return ValidationResult(False, "Please enter a valid email address")


def phone(value: Optional[str]) -> ValidationResult:
    if not value or _PHONE_RE.match(value):
        return _OK
    return ValidationResult(False, "Please enter a valid phone number")


def to_number(value: Any) -> Any:
    """``"4"`` becomes ``4`` and ``"2.50"`` becomes ``2.5``; anything else is returned unchanged."""
    if isinstance(value, bool) or is_blank(value):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return value
    if not math.isfinite(number):
        return value
    return int(number) if number.is_integer() else number


def numeric(value: Any, field_name: str) -> ValidationResult:
    if is_blank(value):
        return _OK
    try:
        float(value)
    except (TypeError, ValueError):
        return ValidationResult(False, f"{field_name} must be a number")
    return _OK
