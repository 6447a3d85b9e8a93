"""Event lifecycle services."""

from toople.services.events.event_service import EventService
from toople.services.events.status import derive_status

__all__ = ["EventService", "derive_status"]
