from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class FieldValidationError(ValidationError):
    """A validation failure tied to one form field.

    The page marks ``field`` with an inline error and scrolls to it; ``title``
    and ``description`` become the toast.
    """

    def __init__(self, field: str, title: str, description: str = ""):
        super().__init__(title)
        self.field = field
        self.title = title
        self.description = description


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a record or page session does not exist."""


class StagingError(DomainError):
    """Raised when a buffer operation targets an unknown draft or slice."""


class SaveInProgressError(DomainError):
    """Raised when a save is requested while another save is in flight."""


class RemoteStoreError(Exception):
    """A create/update/delete/query call against the record store failed."""

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class StorageError(RemoteStoreError):
    """A blob storage upload/download/remove failed."""


class SaveFailedError(DomainError):
    """A batch save aborted on a remote failure.

    ``parsed`` is the user-facing classification of ``cause``.
    """

    def __init__(self, parsed, cause: Exception, *, field: Optional[str] = None):
        super().__init__(parsed.title)
        self.parsed = parsed
        self.cause = cause
        self.field = field
