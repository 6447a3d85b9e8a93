"""
FastAPI router for circles and their members.
"""

from fastapi import APIRouter

from toople.dependencies import CurrentUserId, get_circle_service
from toople.schemas.circles import CreateCircleRequest, AddMemberRequest, SetRightsRequest
from common.utils import success_response

router = APIRouter(prefix="/circles", tags=["circles"])


@router.post("")
async def create_circle(body: CreateCircleRequest, user_id: CurrentUserId):
    """Create a circle; the caller becomes its first admin."""
    circle = await get_circle_service().create_circle(
        name=body.name,
        creator_id=user_id,
        slug=body.slug or "",
    )
    return success_response(circle.model_dump(mode="json"))


@router.get("")
async def get_my_circles(user_id: CurrentUserId):
    circles = await get_circle_service().get_circles_for_user(user_id)
    return success_response([c.model_dump(mode="json") for c in circles])


@router.get("/by-slug/{slug}")
async def get_circle_by_slug(slug: str, user_id: CurrentUserId):
    circle = await get_circle_service().get_circle_by_slug(slug)
    return success_response(circle.model_dump(mode="json"))


@router.get("/{circle_id}")
async def get_circle(circle_id: str, user_id: CurrentUserId):
    circle = await get_circle_service().get_circle(circle_id)
    return success_response(circle.model_dump(mode="json"))


@router.get("/{circle_id}/members")
async def get_members(circle_id: str, user_id: CurrentUserId):
    """Members with display names, newest first."""
    members = await get_circle_service().get_members(circle_id)
    return success_response([m.model_dump(mode="json") for m in members])


@router.post("/{circle_id}/members")
async def add_member(circle_id: str, body: AddMemberRequest, user_id: CurrentUserId):
    circle = await get_circle_service().add_member(
        circle_id=circle_id,
        actor_id=user_id,
        user_id=body.userId,
        rights=body.rights,
    )
    return success_response(circle.model_dump(mode="json"))


@router.put("/{circle_id}/members/{member_id}/rights")
async def set_rights(circle_id: str, member_id: str, body: SetRightsRequest, user_id: CurrentUserId):
    circle = await get_circle_service().set_rights(
        circle_id=circle_id,
        actor_id=user_id,
        user_id=member_id,
        rights=body.rights,
    )
    return success_response(circle.model_dump(mode="json"))


@router.delete("/{circle_id}/members/{member_id}")
async def remove_member(circle_id: str, member_id: str, user_id: CurrentUserId):
    """Remove a member, or leave when member_id is the caller."""
    circle = await get_circle_service().remove_member(
        circle_id=circle_id,
        actor_id=user_id,
        user_id=member_id,
    )
    if circle is None:
        return success_response(message="Circle deleted")
    return success_response(circle.model_dump(mode="json"))


@router.delete("/{circle_id}")
async def delete_circle(circle_id: str, user_id: CurrentUserId):
    await get_circle_service().delete_circle(circle_id, user_id)
    return success_response(message="Circle deleted")
