"""
Event lifecycle service.

Handles event creation, participation and deletion. An event is linked to
circles through invitation documents and to users through participation
documents; its status is derived on every read.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from common.database import DocumentStore, Row
from common.utils.dates import ensure_utc, utcnow
from common.utils.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from common.utils.tasks import gather_or_cancel
from toople.database import BY_EVENT_CIRCLES, BY_EVENT_PARTICIPANTS
from toople.models import Event, Participant
from toople.services.events.status import status_from_participations

logger = logging.getLogger(__name__)


def participants_from_rows(rows: List[Row]) -> List[Participant]:
    """
    Decode participation rows (ascending by join date) into participants.

    A user appears once, at their earliest join, even if a concurrent
    double join stored two records.
    """
    seen = set()
    participants = []
    for row in rows:
        user_id = row.linked_id
        if user_id in seen:
            continue
        seen.add(user_id)
        participants.append(Participant(
            id=user_id,
            name=row.doc.get("name") if row.doc else None,
            joined=ensure_utc(row.sort),
        ))
    return participants


class EventService:
    """
    Handles event creation, reading, participation and deletion.
    """

    def __init__(
        self,
        store: DocumentStore,
        min_threshold: int = 1,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize EventService.

        Args:
            store: Document store gateway
            min_threshold: Smallest accepted threshold for new events
            clock: Source of the current time
        """
        self._store = store
        self._min_threshold = min_threshold
        self._clock = clock

    # ─────────────────────────────────────────────────────────────
    # Creation
    # ─────────────────────────────────────────────────────────────

    async def create_event(
        self,
        creator_id: str,
        date: datetime,
        location: str,
        title: str,
        threshold: int,
        circle_ids: List[str],
        info: str = "",
    ) -> Event:
        """
        Create an event proposed to one or more circles.

        The creator becomes the first participant.

        The writes are not atomic. If an invitation write fails, the event
        is left reachable only through the circles invited so far, and
        calling again creates a second event; the creator recovers by
        deleting the partial event with `delete_event` first.

        Raises:
            ValidationException: If any field is invalid
            NotFoundException: If the creator or a circle does not exist
            ForbiddenException: If the creator is not a member of every circle
        """
        date = ensure_utc(date)
        now = self._clock()
        location = (location or "").strip()
        title = (title or "").strip()
        circle_ids = list(dict.fromkeys(circle_ids or []))

        if date <= now:
            raise ValidationException(message="Event must take place in the future", code="EVENT_IN_PAST")
        if not location:
            raise ValidationException(message="Location is required", code="LOCATION_REQUIRED")
        if not title:
            raise ValidationException(message="Title is required", code="TITLE_REQUIRED")
        if threshold < self._min_threshold:
            raise ValidationException(
                message=f"Threshold must be at least {self._min_threshold}",
                code="INVALID_THRESHOLD",
            )
        if not circle_ids:
            raise ValidationException(message="Event must have at least one circle", code="CIRCLE_REQUIRED")

        creator = await self._store.get(creator_id)
        if not creator or creator.get("type") != "user":
            raise NotFoundException(message="Creator not found", code="USER_NOT_FOUND")

        for circle_id in circle_ids:
            circle = await self._store.get(circle_id)
            if not circle or circle.get("type") != "circle":
                raise NotFoundException(message="Circle not found", code="CIRCLE_NOT_FOUND")
            if creator_id not in circle.get("members", {}):
                raise ForbiddenException(
                    message="Creator is not a member of the circle",
                    code="NOT_CIRCLE_MEMBER",
                )

        event_doc = {
            "type": "event",
            "location": location,
            "title": title,
            "info": info or "",
            "date": date,
            "created": now,
            "threshold": threshold,
        }
        event_id, _ = await self._store.create(event_doc)

        await self._store.create({
            "type": "participant",
            "user": creator_id,
            "event": event_id,
            "date": now,
        })

        # Invitations last: feeds only reach an event through its invitations
        for circle_id in circle_ids:
            await self._store.create({
                "type": "invitation",
                "circle": circle_id,
                "event": event_id,
            })

        logger.info(f"Event {event_id} created by {creator_id} for circles {circle_ids}")

        event_doc["_id"] = event_id
        creator_participant = Participant(id=creator_id, name=creator.get("name"), joined=now)
        return self._assemble(event_doc, [creator_participant], circle_ids, now)

    # ─────────────────────────────────────────────────────────────
    # Reading
    # ─────────────────────────────────────────────────────────────

    async def get_event_doc(self, event_id: str) -> Dict[str, Any]:
        """Get raw event document by ID."""
        doc = await self._store.get(event_id)
        if not doc or doc.get("type") != "event":
            raise NotFoundException(message="Event not found", code="EVENT_NOT_FOUND")
        return doc

    async def get_event(self, event_id: str, user_id: Optional[str] = None) -> Event:
        """
        Get an event with status, creator, participants and invited circles.

        If user_id is given, the user must belong to an invited circle.
        """
        doc = await self.get_event_doc(event_id)
        circle_rows = await self._store.query(BY_EVENT_CIRCLES, event_id, include_docs=True)
        if user_id is not None:
            self._require_invited(user_id, circle_rows)
        return await self.build_event(doc, circle_ids=[row.linked_id for row in circle_rows])

    async def build_event(self, doc: Dict[str, Any], circle_ids: Optional[List[str]] = None) -> Event:
        """
        Load participations for an event document and derive its status.

        Raises:
            InconsistencyException: If the event has no participants
        """
        rows = await self._store.query(BY_EVENT_PARTICIPANTS, doc["_id"], include_docs=True)
        participants = participants_from_rows(rows)
        return self._assemble(doc, participants, circle_ids or [], self._clock())

    def _assemble(
        self,
        doc: Dict[str, Any],
        participants: List[Participant],
        circle_ids: List[str],
        now: datetime,
    ) -> Event:
        date = ensure_utc(doc["date"])
        status = status_from_participations(
            doc["_id"],
            doc["threshold"],
            [p.joined for p in participants],
            date,
            now,
        )
        return Event(
            id=doc["_id"],
            location=doc["location"],
            title=doc["title"],
            info=doc.get("info", ""),
            date=date,
            created=ensure_utc(doc["created"]),
            threshold=doc["threshold"],
            status=status,
            # Earliest join is the creator
            creator=participants[0],
            participants=list(reversed(participants)),
            circles=circle_ids,
        )

    async def get_participants(self, event_id: str) -> List[Participant]:
        """Get participants of an event, most recent join first."""
        await self.get_event_doc(event_id)
        rows = await self._store.query(BY_EVENT_PARTICIPANTS, event_id, include_docs=True)
        return list(reversed(participants_from_rows(rows)))

    # ─────────────────────────────────────────────────────────────
    # Participation
    # ─────────────────────────────────────────────────────────────

    async def join_event(self, event_id: str, user_id: str) -> Event:
        """
        Add a user to an event's participants.

        Idempotent: joining twice leaves a single participation. There is
        no participant cap.
        """
        doc = await self.get_event_doc(event_id)

        user = await self._store.get(user_id)
        if not user or user.get("type") != "user":
            raise NotFoundException(message="User not found", code="USER_NOT_FOUND")

        circle_rows = await self._store.query(BY_EVENT_CIRCLES, event_id, include_docs=True)
        self._require_invited(user_id, circle_rows)

        rows = await self._store.query(BY_EVENT_PARTICIPANTS, event_id)
        if any(row.linked_id == user_id for row in rows):
            logger.debug(f"User {user_id} already participates in event {event_id}")
        else:
            await self._store.create({
                "type": "participant",
                "user": user_id,
                "event": event_id,
                "date": self._clock(),
            })
            logger.info(f"User {user_id} joined event {event_id}")

        return await self.build_event(doc, circle_ids=[row.linked_id for row in circle_rows])

    @staticmethod
    def _require_invited(user_id: str, circle_rows: List[Row]) -> None:
        for row in circle_rows:
            if row.doc and user_id in row.doc.get("members", {}):
                return
        raise ForbiddenException(message="User is not invited to this event", code="NOT_INVITED")

    # ─────────────────────────────────────────────────────────────
    # Deletion
    # ─────────────────────────────────────────────────────────────

    async def delete_event(self, event_id: str, user_id: str) -> None:
        """
        Delete an event (creator only).

        Raises:
            NotFoundException: If the event does not exist
            ForbiddenException: If the user is not the creator
        """
        await self.get_event_doc(event_id)

        rows = await self._store.query(BY_EVENT_PARTICIPANTS, event_id)
        # No rows means an earlier deletion stopped halfway; let it finish
        if rows and rows[0].linked_id != user_id:
            raise ForbiddenException(message="Only the creator can delete an event", code="NOT_EVENT_CREATOR")

        await self.remove_event(event_id)

    async def remove_event(self, event_id: str) -> None:
        """
        Delete an event with its invitations and participations.

        Invitations go first so the event leaves every feed, the event
        document last so an interrupted run can be repeated.
        """
        invitation_rows = await self._store.query(BY_EVENT_CIRCLES, event_id)
        await gather_or_cancel(*(self._delete_document(row.id) for row in invitation_rows))

        participant_rows = await self._store.query(BY_EVENT_PARTICIPANTS, event_id)
        await gather_or_cancel(*(self._delete_document(row.id) for row in participant_rows))

        await self._delete_document(event_id)
        logger.info(
            f"Event {event_id} deleted with {len(invitation_rows)} invitations "
            f"and {len(participant_rows)} participations"
        )

    async def _delete_document(self, doc_id: str) -> None:
        doc = await self._store.get(doc_id)
        if doc:
            await self._store.delete(doc_id, doc["_rev"])
