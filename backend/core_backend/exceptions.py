"""
POS error taxonomy and the DRF exception handler that renders it.

Services raise these exceptions; the API boundary turns them into a typed
``{"error": {"kind": ..., "message": ...}}`` body so clients can branch on
``kind`` and show ``message`` as-is.
"""
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import (
    NotAuthenticated,
    PermissionDenied,
    ValidationError as DRFValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class POSError(Exception):
    """Base class for every error the order core reports to callers."""

    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {"kind": self.kind, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(POSError):
    """A referenced order, item, menu item or check does not exist."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidState(POSError, ValueError):
    """The entity is in a state that does not allow the requested operation."""

    kind = "invalid_state"
    status_code = status.HTTP_409_CONFLICT


class ValidationFailure(POSError, ValueError):
    """Malformed input, rejected before anything is written."""

    kind = "validation_failure"
    status_code = status.HTTP_400_BAD_REQUEST


class Forbidden(POSError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(POSError):
    """The storage transaction failed; the operation is safe to retry."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


def pos_exception_handler(exc, context):
    """
    Render POS errors, DRF validation errors and storage failures with one shape.
    """
    request = context.get("request")
    path = getattr(request, "path", "")

    if isinstance(exc, DatabaseError):
        logger.error(f"Storage failure on {path}: {exc}")
        exc = Conflict("The operation could not be saved, please retry.")

    if isinstance(exc, POSError):
        if isinstance(exc, Conflict):
            logger.warning(f"{exc.kind} on {path}: {exc.message}")
        else:
            logger.info(f"{exc.kind} on {path}: {exc.message}")
        return Response({"error": exc.to_dict()}, status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, DRFValidationError):
        response.data = {
            "error": {
                "kind": ValidationFailure.kind,
                "message": "Request body failed validation.",
                "details": response.data,
            }
        }
    elif isinstance(exc, (PermissionDenied, NotAuthenticated)):
        response.data = {
            "error": {"kind": Forbidden.kind, "message": str(exc.detail)}
        }
    elif response.status_code == status.HTTP_404_NOT_FOUND:
        response.data = {
            "error": {"kind": NotFound.kind, "message": "Not found."}
        }
    else:
        detail = getattr(exc, "detail", str(exc))
        response.data = {"error": {"kind": POSError.kind, "message": str(detail)}}
    return response
