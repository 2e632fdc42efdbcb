"""Domain error taxonomy shared by every module.

Each concrete error carries a stable machine-readable ``code`` and maps to
one HTTP status through its category:

- ``ValidationError``    -> 400 (missing or malformed input)
- ``ConflictError``      -> 400 (business rule violated by current state)
- ``NotFoundError``      -> 404
- ``AuthorizationError`` -> 403 (ownership or role mismatch)
- ``PersistenceError``   -> 500 (wraps storage failures)

Services raise these at the point of detection, inside the transaction, so
the unit of work rolls back.  The service boundary converts them into
``Failure`` results; the API layer renders them.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for all business errors."""

    status_code: int = 400
    default_code: str = "DOMAIN_ERROR"
    default_message: str = "The request could not be processed."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details: Dict[str, Any] = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DomainError):
    status_code = 400
    default_code = "VALIDATION_ERROR"
    default_message = "Invalid request."


class ConflictError(DomainError):
    status_code = 400
    default_code = "CONFLICT"
    default_message = "The request conflicts with the current state."


class NotFoundError(DomainError):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Resource not found."


class AuthorizationError(DomainError):
    status_code = 403
    default_code = "ACCESS_DENIED"
    default_message = "Access denied."


class PersistenceError(DomainError):
    """Storage failure.  ``message`` is always safe to show to clients.

    The underlying exception is kept on ``__cause__`` and in ``cause`` for
    server-side logging only.
    """

    status_code = 500
    default_code = "DATABASE_ERROR"
    default_message = "A database error occurred. Please try again later."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        cause: Optional[BaseException] = None,
        operation: str = "",
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.operation = operation
        self.params: Dict[str, Any] = params or {}
