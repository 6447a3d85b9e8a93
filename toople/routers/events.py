"""
FastAPI router for events.
"""

from fastapi import APIRouter

from toople.dependencies import CurrentUserId, get_event_service
from toople.schemas.events import CreateEventRequest
from common.utils import success_response

router = APIRouter(prefix="/events", tags=["events"])


@router.post("")
async def create_event(body: CreateEventRequest, user_id: CurrentUserId):
    """Propose an event to one or more circles."""
    event = await get_event_service().create_event(
        creator_id=user_id,
        date=body.date,
        location=body.location,
        title=body.title,
        threshold=body.threshold,
        circle_ids=body.circles,
        info=body.info,
    )
    return success_response(event.model_dump(mode="json"))


@router.get("/{event_id}")
async def get_event(event_id: str, user_id: CurrentUserId):
    event = await get_event_service().get_event(event_id, user_id=user_id)
    return success_response(event.model_dump(mode="json"))


@router.post("/{event_id}/join")
async def join_event(event_id: str, user_id: CurrentUserId):
    event = await get_event_service().join_event(event_id, user_id)
    return success_response(event.model_dump(mode="json"))


@router.delete("/{event_id}")
async def delete_event(event_id: str, user_id: CurrentUserId):
    await get_event_service().delete_event(event_id, user_id)
    return success_response(message="Event deleted")
