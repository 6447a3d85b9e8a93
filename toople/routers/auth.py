"""
FastAPI router for account registration and login.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Header

from common.auth import bearer_token
from common.utils import success_response
from toople.dependencies import CurrentUserId, get_auth_provider, get_user_service
from toople.schemas.users import RegisterRequest, LoginRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def _token_response(user):
    token = await get_auth_provider().create_token(user.id)
    return success_response({
        "token": token,
        "user": user.model_dump(mode="json"),
    })


@router.post("/register")
async def register(body: RegisterRequest):
    """Create an account and return an access token."""
    user = await get_user_service().create_user(
        name=body.name,
        email=body.email,
        password=body.password,
    )
    return await _token_response(user)


@router.post("/login")
async def login(body: LoginRequest):
    """Exchange email and password for an access token."""
    user = await get_user_service().authenticate(body.email, body.password)
    return await _token_response(user)


@router.post("/logout")
async def logout(
    user_id: CurrentUserId,
    authorization: Optional[str] = Header(None),
):
    """Revoke the bearer token used for this request."""
    await get_auth_provider().revoke_token(bearer_token(authorization))
    logger.info(f"User {user_id} logged out")
    return success_response(message="Logged out")
