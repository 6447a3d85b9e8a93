"""
Circle management service.

Handles circle creation, membership and rights changes, and circle
deletion. The membership map lives inside the circle document, so every
membership change is a read-modify-write of one document guarded by its
revision.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from common.database import DocumentStore
from common.utils.dates import utcnow
from common.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from toople.database import BY_CIRCLE_EVENTS, BY_CIRCLE_MEMBERS, BY_EVENT_CIRCLES, BY_SLUG, BY_USER_CIRCLES
from toople.models import ALL_RIGHTS, RIGHT_ADMIN, RIGHT_INVITE, RIGHT_POST, Circle, Member
from toople.services.circles.membership import ensure_admin_retained, has_right, normalize_rights
from toople.services.circles.slug import slugify
from toople.services.events.event_service import EventService

logger = logging.getLogger(__name__)


class CircleService:
    """
    Handles circles, their members and the members' rights.
    """

    DEFAULT_MEMBER_RIGHTS = (RIGHT_POST,)

    def __init__(
        self,
        store: DocumentStore,
        event_service: EventService,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize CircleService.

        Args:
            store: Document store gateway
            event_service: Used to remove events orphaned by a circle deletion
            clock: Source of the current time
        """
        self._store = store
        self._event_service = event_service
        self._clock = clock

    # ─────────────────────────────────────────────────────────────
    # Creation and reading
    # ─────────────────────────────────────────────────────────────

    async def create_circle(self, name: str, creator_id: str, slug: str = "") -> Circle:
        """
        Create a circle; the creator gets every right.

        If no slug is given one is derived from the name.

        Raises:
            ValidationException: If the name or slug is empty
            NotFoundException: If the creator does not exist
            ConflictException: If the slug is taken
        """
        name = (name or "").strip()
        if not name:
            raise ValidationException(message="Circle name is required", code="NAME_REQUIRED")

        slug = slugify(slug or name)
        if not slug:
            raise ValidationException(message="Slug cannot be derived from the name", code="INVALID_SLUG")

        creator = await self._store.get(creator_id)
        if not creator or creator.get("type") != "user":
            raise NotFoundException(message="Creator not found", code="USER_NOT_FOUND")

        if await self._store.query(BY_SLUG, slug):
            raise ConflictException(message=f"Slug '{slug}' is already taken", code="SLUG_TAKEN")

        doc = {
            "type": "circle",
            "name": name,
            "slug": slug,
            "members": {
                creator_id: {"rights": list(ALL_RIGHTS), "joined": self._clock()},
            },
        }
        circle_id, _ = await self._store.create(doc)
        doc["_id"] = circle_id

        logger.info(f"Circle {circle_id} ({slug}) created by {creator_id}")
        return Circle.from_doc(doc)

    async def get_circle_doc(self, circle_id: str) -> Dict[str, Any]:
        """Get raw circle document (with revision) by ID."""
        doc = await self._store.get(circle_id)
        if not doc or doc.get("type") != "circle":
            raise NotFoundException(message="Circle not found", code="CIRCLE_NOT_FOUND")
        return doc

    async def get_circle(self, circle_id: str) -> Circle:
        return Circle.from_doc(await self.get_circle_doc(circle_id))

    async def get_circle_by_slug(self, slug: str) -> Circle:
        rows = await self._store.query(BY_SLUG, slug, include_docs=True)
        if not rows:
            raise NotFoundException(message="Circle not found", code="CIRCLE_NOT_FOUND")
        return Circle.from_doc(rows[0].doc)

    async def get_circle_docs_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        rows = await self._store.query(BY_USER_CIRCLES, user_id, include_docs=True)
        return [row.doc for row in rows if row.doc]

    async def get_circles_for_user(self, user_id: str) -> List[Circle]:
        """Get a user's circles, in the order the user joined them."""
        return [Circle.from_doc(doc) for doc in await self.get_circle_docs_for_user(user_id)]

    async def get_members(self, circle_id: str) -> List[Member]:
        """Get a circle's members with names, most recent join first."""
        await self.get_circle_doc(circle_id)
        rows = await self._store.query(BY_CIRCLE_MEMBERS, circle_id, include_docs=True, descending=True)
        return [
            Member(
                id=row.linked_id,
                name=row.doc.get("name") if row.doc else None,
                rights=row.value["rights"],
                joined=row.sort,
            )
            for row in rows
        ]

    # ─────────────────────────────────────────────────────────────
    # Membership changes
    # ─────────────────────────────────────────────────────────────

    async def add_member(
        self,
        circle_id: str,
        actor_id: str,
        user_id: str,
        rights: Optional[Iterable[str]] = None,
    ) -> Circle:
        """
        Add a user to a circle.

        The actor needs `invite`; granting `admin` also needs `admin`.

        Raises:
            ForbiddenException: If the actor lacks the required right
            NotFoundException: If the circle or user does not exist
            ConflictException: If the user is already a member, or on a
                concurrent modification (retryable)
        """
        rights = normalize_rights(self.DEFAULT_MEMBER_RIGHTS if rights is None else rights)
        doc = await self.get_circle_doc(circle_id)
        members = doc.get("members", {})

        if not has_right(members, actor_id, RIGHT_INVITE):
            raise ForbiddenException(message="Inviting requires the invite right", code="MISSING_INVITE_RIGHT")
        if RIGHT_ADMIN in rights and not has_right(members, actor_id, RIGHT_ADMIN):
            raise ForbiddenException(message="Granting admin requires the admin right", code="MISSING_ADMIN_RIGHT")
        if user_id in members:
            raise ConflictException(message="User is already a member", code="ALREADY_MEMBER")

        user = await self._store.get(user_id)
        if not user or user.get("type") != "user":
            raise NotFoundException(message="User not found", code="USER_NOT_FOUND")

        members[user_id] = {"rights": rights, "joined": self._clock()}
        doc["members"] = members
        doc["_rev"] = await self._store.put(circle_id, doc["_rev"], doc)

        logger.info(f"User {user_id} added to circle {circle_id} by {actor_id} with rights {rights}")
        return Circle.from_doc(doc)

    async def set_rights(
        self,
        circle_id: str,
        actor_id: str,
        user_id: str,
        rights: Iterable[str],
    ) -> Circle:
        """
        Replace a member's rights (admin only).

        Raises:
            ForbiddenException: If the actor is not an admin
            NotFoundException: If the user is not a member
            ConflictException: If the member is the sole admin and would lose
                admin, or on a concurrent modification (retryable)
        """
        rights = normalize_rights(rights)
        doc = await self.get_circle_doc(circle_id)
        members = doc.get("members", {})

        if not has_right(members, actor_id, RIGHT_ADMIN):
            raise ForbiddenException(message="Changing rights requires the admin right", code="MISSING_ADMIN_RIGHT")
        if user_id not in members:
            raise NotFoundException(message="User is not a member of the circle", code="MEMBER_NOT_FOUND")

        ensure_admin_retained(members, user_id, new_rights=rights)

        members[user_id]["rights"] = rights
        doc["_rev"] = await self._store.put(circle_id, doc["_rev"], doc)

        logger.info(f"Rights of {user_id} in circle {circle_id} set to {rights} by {actor_id}")
        return Circle.from_doc(doc)

    async def remove_member(self, circle_id: str, actor_id: str, user_id: str) -> Optional[Circle]:
        """
        Remove a member from a circle.

        Members may always remove themselves; removing someone else needs
        `admin`. Removing the last member deletes the circle.

        Returns:
            The updated circle, or None if the circle was deleted

        Raises:
            ForbiddenException: If the actor may not remove the member
            NotFoundException: If the user is not a member
            ConflictException: If the member is the sole admin, or on a
                concurrent modification (retryable)
        """
        doc = await self.get_circle_doc(circle_id)
        members = doc.get("members", {})

        if actor_id != user_id and not has_right(members, actor_id, RIGHT_ADMIN):
            raise ForbiddenException(message="Removing members requires the admin right", code="MISSING_ADMIN_RIGHT")
        if user_id not in members:
            raise NotFoundException(message="User is not a member of the circle", code="MEMBER_NOT_FOUND")

        return await self.remove_membership(doc, user_id)

    async def remove_membership(self, doc: Dict[str, Any], user_id: str) -> Optional[Circle]:
        """
        Remove a membership from a circle document read with its revision.

        No permission check; callers decide who may do this.

        When the last member leaves, the circle is deleted without first
        writing it empty: the member stays listed until the circle document
        itself goes, so a deletion that stopped halfway is finished by
        repeating the same call.
        """
        members = doc.get("members", {})
        if user_id not in members:
            return Circle.from_doc(doc)

        ensure_admin_retained(members, user_id)

        if len(members) == 1:
            logger.info(f"Last member {user_id} leaving circle {doc['_id']}")
            await self._delete_circle(doc)
            return None

        del members[user_id]
        doc["_rev"] = await self._store.put(doc["_id"], doc["_rev"], doc)
        logger.info(f"User {user_id} removed from circle {doc['_id']}")
        return Circle.from_doc(doc)

    # ─────────────────────────────────────────────────────────────
    # Deletion
    # ─────────────────────────────────────────────────────────────

    async def delete_circle(self, circle_id: str, actor_id: str) -> None:
        """
        Delete a circle (admin only).

        Events invited only to this circle are deleted with it; other
        events just lose this circle's invitation.
        """
        doc = await self.get_circle_doc(circle_id)
        if not has_right(doc.get("members", {}), actor_id, RIGHT_ADMIN):
            raise ForbiddenException(message="Deleting a circle requires the admin right", code="MISSING_ADMIN_RIGHT")
        await self._delete_circle(doc)

    async def _delete_circle(self, doc: Dict[str, Any]) -> None:
        circle_id = doc["_id"]
        invitation_rows = await self._store.query(BY_CIRCLE_EVENTS, circle_id)

        removed_events = 0
        for row in invitation_rows:
            event_id = row.linked_id
            event_circles = await self._store.query(BY_EVENT_CIRCLES, event_id)
            if all(r.linked_id == circle_id for r in event_circles):
                await self._event_service.remove_event(event_id)
                removed_events += 1
            else:
                invitation = await self._store.get(row.id)
                if invitation:
                    await self._store.delete(row.id, invitation["_rev"])

        # Circle document last so an interrupted deletion can be re-run
        await self._store.delete(circle_id, doc["_rev"])
        logger.info(
            f"Circle {circle_id} deleted; {removed_events} events removed, "
            f"{len(invitation_rows) - removed_events} invitations withdrawn"
        )
