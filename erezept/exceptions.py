"""
Error taxonomy shared by the REST and STOMP transports.

Expected outcomes (not found, duplicate key, invalid payload) are raised
as :class:`ErezeptError` subclasses.  Each carries an :class:`ErrorKind`
that maps one-to-one to the status of the wire payload; framework
exceptions are folded into the same closed set by :func:`as_erezept_error`
before anything is rendered.
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Optional

from django.http import Http404
from django.utils import timezone
from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import set_rollback

logger = logging.getLogger(__name__)

INVALID_FORMAT_MESSAGE = "Invalid message format or missing required fields"


class ErrorKind(enum.Enum):
    VALIDATION = 400
    NOT_FOUND = 404
    CONFLICT = 409
    OTHER = 500

    @property
    def status(self) -> int:
        return self.value


class ErezeptError(drf_exceptions.APIException):
    kind = ErrorKind.OTHER
    status_code = 500
    default_detail = "An unexpected error occurred"
    default_code = "error"

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None,
                 kind: Optional[ErrorKind] = None):
        if kind is not None:
            self.kind = kind
            self.status_code = kind.status
        self.message = message or str(self.default_detail)
        self.details = details
        super().__init__(self.message)


class NotFound(ErezeptError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    default_detail = "Not found"
    default_code = "not_found"


class Conflict(ErezeptError):
    kind = ErrorKind.CONFLICT
    status_code = 409
    default_detail = "Conflict"
    default_code = "conflict"


class ValidationFailure(ErezeptError):
    kind = ErrorKind.VALIDATION
    status_code = 400
    default_detail = "Validation failed"
    default_code = "invalid"


def _field_errors(detail: Any) -> dict:
    """Flatten DRF validation detail into ``{field: first message}``."""
    if isinstance(detail, dict):
        errors = {}
        for field, messages in detail.items():
            if isinstance(messages, (list, tuple)) and messages:
                errors[field] = str(messages[0])
            else:
                errors[field] = str(messages)
        return errors
    if isinstance(detail, (list, tuple)):
        return {"non_field_errors": str(detail[0]) if detail else "Invalid value"}
    return {"non_field_errors": str(detail)}


def as_erezept_error(exc: BaseException) -> ErezeptError:
    """Fold any exception into the closed error taxonomy."""
    if isinstance(exc, ErezeptError):
        return exc
    if isinstance(exc, drf_exceptions.ValidationError):
        return ValidationFailure("Validation failed", {"errors": _field_errors(exc.detail)})
    if isinstance(exc, drf_exceptions.ParseError):
        return ValidationFailure(INVALID_FORMAT_MESSAGE, {"error": str(exc.detail)})
    if isinstance(exc, Http404):
        return NotFound(str(exc) or None)
    if isinstance(exc, drf_exceptions.APIException):
        kind = next((k for k in ErrorKind if k.status == exc.status_code), None)
        error = ErezeptError(str(exc.detail), kind=kind)
        if kind is None:
            error.status_code = exc.status_code
        return error
    return ErezeptError()


def error_payload(error: ErezeptError) -> dict:
    """Render the ``{status, message, timestamp, details?}`` wire payload."""
    payload = {
        "status": error.status_code,
        "message": error.message,
        "timestamp": timezone.now().isoformat(),
    }
    if error.details:
        payload["details"] = error.details
    return payload


def api_exception_handler(exc, context):
    """DRF exception handler rendering every error in the shared payload shape."""
    error = as_erezept_error(exc)
    if error.kind is ErrorKind.OTHER and not isinstance(exc, drf_exceptions.APIException):
        # Storage failures and bugs: let them surface as 500 with a trace in the log.
        logger.error("Unhandled error in %s", context.get("view").__class__.__name__, exc_info=exc)
    else:
        logger.info("API error [%s]: %s", error.status_code, error.message)
    set_rollback()
    headers = {}
    if isinstance(exc, drf_exceptions.APIException):
        if getattr(exc, "auth_header", None):
            headers["WWW-Authenticate"] = exc.auth_header
        if getattr(exc, "wait", None):
            headers["Retry-After"] = "%d" % exc.wait
    return Response(error_payload(error), status=error.status_code, headers=headers or None)
