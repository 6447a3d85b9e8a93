"""
FastAPI router for the notification feed.
"""

from fastapi import APIRouter, Query

from toople.dependencies import CurrentUserId, get_feed_service
from toople.schemas.events import DismissRequest
from toople.services.notifications.grouping import group_membership_notifications
from common.utils import success_response

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def get_notifications(
    user_id: CurrentUserId,
    grouped: bool = Query(False, description="Collapse consecutive joins of the same circle"),
):
    notifications = await get_feed_service().get_notifications(user_id)
    if grouped:
        notifications = group_membership_notifications(notifications)
    return success_response([n.model_dump(mode="json") for n in notifications])


@router.post("/dismiss")
async def dismiss(body: DismissRequest, user_id: CurrentUserId):
    """Hide an event or membership entry from the caller's feed."""
    await get_feed_service().dismiss(user_id, body.targetId)
    return success_response(message="Dismissed")
