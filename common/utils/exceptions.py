"""
Error taxonomy shared by the services and the HTTP layer.

Every error a service raises is an APIException subclass carrying an HTTP
status, a machine-readable code and optional details. Services raise them
directly; the app's exception handler renders them with `error_response`.

Example:
    from common.utils import NotFoundException

    doc = await store.get(circle_id)
    if doc is None:
        raise NotFoundException("Circle not found", code="CIRCLE_NOT_FOUND")
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException


class APIException(HTTPException):
    """Base class: subclasses pick the status and the default message/code."""

    status: int = 500
    default_message: str = "Internal error"
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details

        detail: Dict[str, Any] = {"message": self.message, "code": self.code}
        if details is not None:
            detail["details"] = details

        super().__init__(status_code=self.status, detail=detail, headers=headers)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class UnauthorizedException(APIException):
    """Missing, invalid or revoked credentials."""

    status = 401
    default_message = "Unauthorized"
    default_code = "UNAUTHORIZED"


class ForbiddenException(APIException):
    """Authenticated, but lacking the right for this action."""

    status = 403
    default_message = "Forbidden"
    default_code = "FORBIDDEN"


class NotFoundException(APIException):
    status = 404
    default_message = "Not found"
    default_code = "NOT_FOUND"


class ConflictException(APIException):
    """
    Uniqueness violation, admin-rule violation or revision mismatch.

    Revision mismatches are flagged `retryable`: the caller should re-fetch
    the document and try again. Nothing retries automatically.
    """

    status = 409
    default_message = "Conflict"
    default_code = "CONFLICT"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        retryable: bool = False,
    ):
        self.retryable = retryable
        if retryable:
            details = {"retryable": True, **(details or {})}
        super().__init__(message, code, details)


class ValidationException(APIException):
    """Input rejected before anything was written."""

    status = 422
    default_message = "Validation error"
    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        errors: Optional[list] = None,
    ):
        if errors:
            details = {"errors": errors, **(details or {})}
        super().__init__(message, code, details)


class InconsistencyException(APIException):
    """
    Stored data breaks an invariant the write paths are supposed to keep,
    e.g. an event with no participants. Fatal for the current operation.
    """

    status = 500
    default_message = "Stored data is inconsistent"
    default_code = "DATA_INCONSISTENCY"


class TransportException(APIException):
    """The document store is unreachable or a call ran past its deadline."""

    status = 503
    default_message = "Document store unavailable"
    default_code = "STORE_UNAVAILABLE"
