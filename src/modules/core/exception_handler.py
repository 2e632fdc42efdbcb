"""Standardised error responses for the API.

Every error body has the same shape::

    {
        "type": "validation_error" | "client_error" | "server_error",
        "errors": [{"code": "...", "detail": "...", "attr": "field" | null}],
    }

Domain errors additionally expose ``error_code`` (the stable business code,
e.g. ``INSUFFICIENT_STOCK``) and ``details``.

Registered as ``REST_FRAMEWORK["EXCEPTION_HANDLER"]``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.conf import settings
from django.db import DatabaseError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from modules.core.exceptions import (
    DomainError,
    PersistenceError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


def _error_type(status_code: int, is_validation: bool) -> str:
    if status_code >= 500:
        return "server_error"
    if is_validation:
        return "validation_error"
    return "client_error"


def _flatten(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    """Flatten DRF's nested ``ErrorDetail`` structures into a list."""
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in detail.items():
            if key == "non_field_errors":
                child = attr
            else:
                child = f"{attr}.{key}" if attr else str(key)
            errors.extend(_flatten(value, child))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            child = attr
            if isinstance(value, (dict, list)) and attr:
                child = f"{attr}.{index}"
            errors.extend(_flatten(value, child))
        return errors
    code = getattr(detail, "code", None) or "error"
    return [{"code": code, "detail": str(detail), "attr": attr}]


def domain_error_response(error: DomainError) -> Response:
    """Render a ``DomainError`` (usually from a ``Failure`` result)."""
    detail = error.message
    if isinstance(error, PersistenceError) and settings.DEBUG and error.cause:
        detail = f"{error.message} ({error.cause})"

    body: Dict[str, Any] = {
        "type": _error_type(error.status_code, isinstance(error, ValidationError)),
        "error_code": error.code,
        "errors": [{"code": error.code, "detail": detail, "attr": None}],
    }
    if error.details:
        body["details"] = error.details
    return Response(body, status=error.status_code)


def exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """DRF exception handler producing the standard error format."""
    if isinstance(exc, DomainError):
        return domain_error_response(exc)

    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.exception(
            "api.database_error",
            view=type(view).__name__ if view else None,
        )
        return domain_error_response(PersistenceError(cause=exc))

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.APIException):
        errors = _flatten(exc.detail)
        is_validation = isinstance(exc, exceptions.ValidationError) or (
            isinstance(exc, exceptions.ParseError)
        )
    else:
        data = response.data
        detail = data.get("detail", data) if isinstance(data, dict) else data
        code = getattr(detail, "code", None) or "error"
        errors = [{"code": code, "detail": str(detail), "attr": None}]
        is_validation = False

    response.data = {
        "type": _error_type(response.status_code, is_validation),
        "errors": errors,
    }
    if response.status_code == status.HTTP_400_BAD_REQUEST and not errors:
        response.data["errors"] = [
            {"code": "invalid", "detail": "Invalid request.", "attr": None}
        ]
    return response
