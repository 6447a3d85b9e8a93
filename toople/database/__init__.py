"""Toople document indexes."""

from toople.database.views import (
    VIEWS,
    BY_EMAIL,
    BY_SLUG,
    BY_USER_CIRCLES,
    BY_CIRCLE_MEMBERS,
    BY_CIRCLE_EVENTS,
    BY_EVENT_CIRCLES,
    BY_EVENT_PARTICIPANTS,
    BY_USER_DISMISSALS,
)

__all__ = [
    "VIEWS",
    "BY_EMAIL",
    "BY_SLUG",
    "BY_USER_CIRCLES",
    "BY_CIRCLE_MEMBERS",
    "BY_CIRCLE_EVENTS",
    "BY_EVENT_CIRCLES",
    "BY_EVENT_PARTICIPANTS",
    "BY_USER_DISMISSALS",
]
