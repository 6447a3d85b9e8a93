"""
FastAPI router for the current user's account.
"""

from fastapi import APIRouter

from toople.dependencies import CurrentUserId, get_user_service
from toople.schemas.users import UpdateNameRequest, EmailRequest, ChangePasswordRequest
from common.utils import success_response

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
async def get_me(user_id: CurrentUserId):
    user = await get_user_service().get_user(user_id)
    return success_response(user.model_dump(mode="json"))


@router.patch("/me")
async def update_me(body: UpdateNameRequest, user_id: CurrentUserId):
    user = await get_user_service().update_name(user_id, body.name)
    return success_response(user.model_dump(mode="json"))


@router.post("/me/emails")
async def add_email(body: EmailRequest, user_id: CurrentUserId):
    user = await get_user_service().add_email(user_id, body.email)
    return success_response(user.model_dump(mode="json"))


@router.delete("/me/emails/{email}")
async def remove_email(email: str, user_id: CurrentUserId):
    user = await get_user_service().remove_email(user_id, email)
    return success_response(user.model_dump(mode="json"))


@router.put("/me/emails/primary")
async def set_primary_email(body: EmailRequest, user_id: CurrentUserId):
    """Move an existing address to the front of the email list."""
    user = await get_user_service().set_primary_email(user_id, body.email)
    return success_response(user.model_dump(mode="json"))


@router.put("/me/password")
async def change_password(body: ChangePasswordRequest, user_id: CurrentUserId):
    await get_user_service().change_password(user_id, body.currentPassword, body.newPassword)
    return success_response(message="Password changed")


@router.delete("/me")
async def delete_me(user_id: CurrentUserId):
    """
    Delete the account.

    Fails with SOLE_ADMIN while the user is the only admin of a circle
    that has other members.
    """
    await get_user_service().delete_user(user_id)
    return success_response(message="Account deleted")
