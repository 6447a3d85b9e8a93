"""
FastAPI dependencies for the Toople application.

Provides dependency injection for all services.
"""

from typing import Annotated, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.auth import AuthProvider, CredentialHasher, JWTAuth, create_auth_dependency
from common.database import DocumentStore, MongoDocumentStore
from toople.config import Settings
from toople.database import VIEWS
from toople.services.circles.circle_service import CircleService
from toople.services.events.event_service import EventService
from toople.services.identity.user_service import UserService
from toople.services.notifications.feed_service import FeedService


# ─────────────────────────────────────────────────────────────────
# Global service instances
# ─────────────────────────────────────────────────────────────────

_auth_provider: Optional[AuthProvider] = None
_event_service: Optional[EventService] = None
_circle_service: Optional[CircleService] = None
_user_service: Optional[UserService] = None
_feed_service: Optional[FeedService] = None


# ─────────────────────────────────────────────────────────────────
# Initialization functions
# ─────────────────────────────────────────────────────────────────

def init_services(
    store: DocumentStore,
    auth_provider: AuthProvider,
    hasher: Optional[CredentialHasher] = None,
    feed_timeout_seconds: float = 5.0,
    min_threshold: int = 1,
) -> None:
    """Wire every service onto one document store."""
    global _auth_provider, _event_service, _circle_service, _user_service, _feed_service

    _auth_provider = auth_provider
    _event_service = EventService(store=store, min_threshold=min_threshold)
    _circle_service = CircleService(store=store, event_service=_event_service)
    _user_service = UserService(store=store, circle_service=_circle_service, hasher=hasher)
    _feed_service = FeedService(
        store=store,
        event_service=_event_service,
        timeout_seconds=feed_timeout_seconds,
    )


def init_all_services(db: AsyncIOMotorDatabase, settings: Settings) -> MongoDocumentStore:
    """
    Initialize all services against MongoDB.

    Returns:
        The document store, so the caller can ensure its indexes
    """
    store = MongoDocumentStore(
        db,
        views=VIEWS,
        collection_name=settings.MONGODB_COLLECTION,
        max_time_ms=settings.STORE_MAX_TIME_MS,
    )
    init_services(
        store=store,
        auth_provider=JWTAuth(
            secret=settings.JWT_SECRET or "",
            algorithm=settings.JWT_ALGORITHM,
            access_token_expire_minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
        ),
        hasher=CredentialHasher(rounds=settings.BCRYPT_ROUNDS),
        feed_timeout_seconds=settings.FEED_TIMEOUT_SECONDS,
        min_threshold=settings.EVENT_MIN_THRESHOLD,
    )
    return store


# ─────────────────────────────────────────────────────────────────
# Getters
# ─────────────────────────────────────────────────────────────────

def get_auth_provider() -> AuthProvider:
    """Get auth provider instance."""
    if _auth_provider is None:
        raise RuntimeError("Auth services not initialized.")
    return _auth_provider


def get_event_service() -> EventService:
    """Get event service instance."""
    if _event_service is None:
        raise RuntimeError("Event services not initialized.")
    return _event_service


def get_circle_service() -> CircleService:
    """Get circle service instance."""
    if _circle_service is None:
        raise RuntimeError("Circle services not initialized.")
    return _circle_service


def get_user_service() -> UserService:
    """Get user service instance."""
    if _user_service is None:
        raise RuntimeError("User services not initialized.")
    return _user_service


def get_feed_service() -> FeedService:
    """Get feed service instance."""
    if _feed_service is None:
        raise RuntimeError("Notification services not initialized.")
    return _feed_service


# ─────────────────────────────────────────────────────────────────
# Auth dependency
# ─────────────────────────────────────────────────────────────────

require_auth = create_auth_dependency(get_auth_provider)

CurrentUserId = Annotated[str, Depends(require_auth)]
