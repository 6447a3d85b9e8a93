"""
Pydantic models for user and auth request validation.
"""

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Request body for creating an account."""
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class LoginRequest(BaseModel):
    """Request body for logging in."""
    email: str
    password: str


class UpdateNameRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class EmailRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)


class ChangePasswordRequest(BaseModel):
    currentPassword: str
    newPassword: str = Field(..., min_length=1, max_length=128)
