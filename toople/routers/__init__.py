"""
Toople API routers.
"""

from toople.routers.auth import router as auth_router
from toople.routers.users import router as users_router
from toople.routers.circles import router as circles_router
from toople.routers.events import router as events_router
from toople.routers.notifications import router as notifications_router

__all__ = [
    "auth_router",
    "users_router",
    "circles_router",
    "events_router",
    "notifications_router",
]
