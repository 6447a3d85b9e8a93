"""
Utilities module - Common helpers for API responses, exceptions, and validation.
"""

from common.utils.responses import success_response, error_response
from common.utils.exceptions import (
    APIException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    ValidationException,
    InconsistencyException,
    TransportException,
)
from common.utils.validation import PasswordPolicy, normalize_email
from common.utils.tasks import gather_or_cancel

__all__ = [
    "success_response",
    "error_response",
    "APIException",
    "UnauthorizedException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "ValidationException",
    "InconsistencyException",
    "TransportException",
    "PasswordPolicy",
    "normalize_email",
    "gather_or_cancel",
]
