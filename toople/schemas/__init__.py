"""
Toople request schemas.
"""

from toople.schemas.users import (
    RegisterRequest,
    LoginRequest,
    UpdateNameRequest,
    EmailRequest,
    ChangePasswordRequest,
)
from toople.schemas.circles import CreateCircleRequest, AddMemberRequest, SetRightsRequest
from toople.schemas.events import CreateEventRequest, DismissRequest

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "UpdateNameRequest",
    "EmailRequest",
    "ChangePasswordRequest",
    "CreateCircleRequest",
    "AddMemberRequest",
    "SetRightsRequest",
    "CreateEventRequest",
    "DismissRequest",
]
