"""Identity services."""

from toople.services.identity.user_service import UserService

__all__ = ["UserService"]
