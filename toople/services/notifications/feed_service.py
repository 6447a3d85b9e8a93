"""
Notification feed service.

Builds a user's activity feed from independent store queries: the user's
circles, each circle's invited events and membership joins, and each
event's participations. Results are merged by a single owner, deduplicated,
filtered against the user's dismissals and sorted newest first.

The queries are read-only and independent, so they run concurrently. The
feed may therefore mix snapshots taken at slightly different moments; it is
eventually consistent, never partial. A deadline covers the whole
aggregation, and if it expires the request fails as a whole.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Set, Tuple

from common.database import DocumentStore
from common.utils.dates import ensure_utc, utcnow
from common.utils.exceptions import TransportException, ValidationException
from common.utils.tasks import gather_or_cancel
from toople.database import BY_CIRCLE_EVENTS, BY_CIRCLE_MEMBERS, BY_USER_CIRCLES, BY_USER_DISMISSALS
from toople.models import (
    CircleRef,
    EventNotification,
    MembershipNotification,
    Notification,
    UserRef,
)
from toople.services.events.event_service import EventService

logger = logging.getLogger(__name__)


class FeedService:
    """
    Aggregates event and membership notifications for a user.
    """

    def __init__(
        self,
        store: DocumentStore,
        event_service: EventService,
        timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize FeedService.

        Args:
            store: Document store gateway
            event_service: Derives event status and participants
            timeout_seconds: Deadline for one whole aggregation
            clock: Source of the current time
        """
        self._store = store
        self._event_service = event_service
        self._timeout = timeout_seconds
        self._clock = clock

    async def get_notifications(self, user_id: str) -> List[Notification]:
        """
        Get a user's feed, newest first.

        Returns an empty list for a user without circles.

        Raises:
            InconsistencyException: If a reachable event has no participants
            TransportException: If the store fails or the deadline expires
        """
        try:
            return await asyncio.wait_for(self._aggregate(user_id), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(f"Feed aggregation for {user_id} exceeded {self._timeout}s")
            raise TransportException("Notification feed timed out", code="STORE_TIMEOUT")

    async def _aggregate(self, user_id: str) -> List[Notification]:
        circle_rows = await self._store.query(BY_USER_CIRCLES, user_id, include_docs=True)
        circles = [row.doc for row in circle_rows if row.doc]
        if not circles:
            return []

        dismissed = await self.get_dismissed(user_id)

        scans = await gather_or_cancel(*(
            self._scan_circle(circle, user_id, dismissed) for circle in circles
        ))

        # Single-owner merge; the first circle to reach an event keeps it
        events: Dict[str, Dict[str, Any]] = {}
        notifications: List[Notification] = []
        for event_docs, memberships in scans:
            for doc in event_docs:
                events.setdefault(doc["_id"], doc)
            notifications.extend(memberships)

        visible = [doc for event_id, doc in events.items() if event_id not in dismissed]
        notifications.extend(await gather_or_cancel(*(
            self._event_notification(doc) for doc in visible
        )))

        # list.sort is stable, so ties keep merge order
        notifications.sort(key=lambda n: n.date, reverse=True)

        logger.debug(
            f"Feed for {user_id}: {len(circles)} circles, {len(visible)} events, "
            f"{len(notifications)} notifications"
        )
        return notifications

    async def _scan_circle(
        self,
        circle: Dict[str, Any],
        user_id: str,
        dismissed: Set[str],
    ) -> Tuple[List[Dict[str, Any]], List[MembershipNotification]]:
        circle_id = circle["_id"]
        event_rows, member_rows = await gather_or_cancel(
            self._store.query(BY_CIRCLE_EVENTS, circle_id, include_docs=True),
            self._store.query(BY_CIRCLE_MEMBERS, circle_id, include_docs=True),
        )

        event_docs = []
        for row in event_rows:
            if row.doc is None:
                logger.warning(f"Invitation {row.id} points to missing event {row.linked_id}")
                continue
            event_docs.append(row.doc)

        circle_ref = CircleRef(id=circle_id, name=circle["name"], slug=circle["slug"])
        memberships = []
        for row in member_rows:
            joiner_id = row.linked_id
            key = MembershipNotification.key(circle_id, joiner_id)
            if key in dismissed:
                continue
            memberships.append(MembershipNotification(
                id=key,
                date=ensure_utc(row.sort),
                user=UserRef(id=joiner_id, name=row.doc.get("name") if row.doc else None),
                circle=circle_ref,
                me=joiner_id == user_id,
            ))

        return event_docs, memberships

    async def _event_notification(self, doc: Dict[str, Any]) -> EventNotification:
        event = await self._event_service.build_event(doc)
        return EventNotification(id=event.id, date=event.date, event=event)

    # ─────────────────────────────────────────────────────────────
    # Dismissals
    # ─────────────────────────────────────────────────────────────

    async def get_dismissed(self, user_id: str) -> Set[str]:
        """Get the set of target ids a user has dismissed."""
        rows = await self._store.query(BY_USER_DISMISSALS, user_id)
        return {row.value for row in rows}

    async def dismiss(self, user_id: str, target_id: str) -> None:
        """
        Permanently hide a feed entry for a user.

        Dismissing the same target again is a no-op.
        """
        target_id = (target_id or "").strip()
        if not target_id:
            raise ValidationException(message="Target id is required", code="TARGET_REQUIRED")

        if target_id in await self.get_dismissed(user_id):
            logger.debug(f"User {user_id} already dismissed {target_id}")
            return

        await self._store.create({
            "type": "dismissal",
            "user": user_id,
            "target": target_id,
            "date": self._clock(),
        })
        logger.info(f"User {user_id} dismissed {target_id}")
