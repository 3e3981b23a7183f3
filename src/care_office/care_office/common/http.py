"""Shared helpers for the JSON controllers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from flask import Flask, g, jsonify, request

from ..core.enums import Role, Severity
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    FieldValidationError,
    NotFoundError,
    RemoteStoreError,
    SaveFailedError,
    SaveInProgressError,
    ValidationError,
)
from ..errors.parser import parse_store_error
from ..notifications.toasts import Toast, ToastCollector
from ..store.file_storage import UploadedFile
from .datetime_utils import parse_iso_date, to_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Caller identity as forwarded by the fronting auth proxy."""

    staff_id: Optional[str]
    name: Optional[str]
    role: Role


def current_actor() -> Actor:
    try:
        role = Role((request.headers.get("X-User-Role") or Role.STAFF.value).lower())
    except ValueError:
        raise AuthorizationError("Unknown role") from None
    return Actor(
        staff_id=request.headers.get("X-Staff-Id") or None,
        name=request.headers.get("X-User-Name") or None,
        role=role,
    )


def notifier() -> ToastCollector:
    """Toast collector for the current request."""
    if "notifier" not in g:
        g.notifier = ToastCollector()
    return g.notifier


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def form_payload() -> tuple[dict, Optional[UploadedFile]]:
    """JSON body, or multipart fields plus an optional ``file`` part."""
    if not request.files and not request.form:
        return json_body(), None
    data = {k: v for k, v in request.form.items()}
    part = request.files.get("file")
    if part is None or not part.filename:
        return data, None
    return data, UploadedFile(filename=part.filename, content=part.read(), content_type=part.mimetype)


def parse_date_arg(value: Optional[str], field_name: str, *, default: Optional[date] = None) -> date:
    if not value:
        if default is not None:
            return default
        raise ValidationError(f"{field_name} is required")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)") from None


def ok(data: Any = None, *, message: str = "", status: int = 200):
    toasts = g.notifier.toasts if "notifier" in g else []
    return jsonify({"success": True, "message": message, "data": data, "toasts": [t.as_dict() for t in toasts]}), status


def _fail(status: int, message: str, toast: Optional[Toast] = None, **extra):
    toasts = list(g.notifier.errors) if "notifier" in g else []
    if not toasts and toast is not None:
        toasts = [toast]
    body = {"success": False, "message": message, "toasts": [t.as_dict() for t in toasts], **extra}
    return jsonify(body), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(FieldValidationError)
    def _field_invalid(e: FieldValidationError):
        return _fail(400, e.title, Toast(e.title, e.description, Severity.ERROR), field=e.field)

    @app.errorhandler(ValidationError)
    def _invalid(e: ValidationError):
        return _fail(400, str(e), Toast(str(e), severity=Severity.ERROR))

    @app.errorhandler(AuthorizationError)
    def _forbidden(e: AuthorizationError):
        return _fail(403, str(e), Toast(str(e), severity=Severity.ERROR))

    @app.errorhandler(NotFoundError)
    def _not_found(e: NotFoundError):
        return _fail(404, str(e))

    @app.errorhandler(SaveInProgressError)
    def _busy(e: SaveInProgressError):
        return _fail(409, str(e))

    @app.errorhandler(SaveFailedError)
    def _save_failed(e: SaveFailedError):
        p = e.parsed
        return _fail(502, p.title, Toast(p.title, p.description, p.severity), field=e.field, retryable=p.retryable)

    @app.errorhandler(RemoteStoreError)
    def _remote(e: RemoteStoreError):
        logger.warning("Store call failed: %s (%s)", e.message, e.code)
        p = parse_store_error(e)
        return _fail(502, p.title, Toast(p.title, p.description, p.severity), retryable=p.retryable)

    @app.errorhandler(DomainError)
    def _domain(e: DomainError):
        return _fail(400, str(e), Toast(str(e), severity=Severity.ERROR))


def record_json(row) -> dict:
    """A store row with dates and times rendered as ISO text."""
    return {k: to_iso(v) for k, v in row.items()}
