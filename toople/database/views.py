"""
Index definitions for the Toople document collection.

Each index is a map function over a single document yielding
`(key, sort, value)` tuples. A value of the form `{"_id": other}` links the
row to another document, which `include_docs=True` resolves.

Document types:
    user         name, emails, password
    circle       name, slug, members {user_id: {rights, joined}}
    event        location, title, info, date, created, threshold
    participant  user, event, date
    invitation   circle, event
    dismissal    user, target
"""

from typing import Any, Dict

# Index names
BY_EMAIL = "by-email"
BY_SLUG = "by-slug"
BY_USER_CIRCLES = "by-user-circles"
BY_CIRCLE_MEMBERS = "by-circle-members"
BY_CIRCLE_EVENTS = "by-circle-events"
BY_EVENT_CIRCLES = "by-event-circles"
BY_EVENT_PARTICIPANTS = "by-event-participants"
BY_USER_DISMISSALS = "by-user-dismissals"


def by_email(doc: Dict[str, Any]):
    if doc.get("type") == "user":
        for email in doc.get("emails", []):
            yield email, None, None


def by_slug(doc: Dict[str, Any]):
    if doc.get("type") == "circle":
        yield doc["slug"], None, None


def by_user_circles(doc: Dict[str, Any]):
    """Circles of a user, in join order."""
    if doc.get("type") == "circle":
        for user_id, member in doc.get("members", {}).items():
            yield user_id, member["joined"], None


def by_circle_members(doc: Dict[str, Any]):
    """Membership-join records of a circle, linked to the member's user doc."""
    if doc.get("type") == "circle":
        for user_id, member in doc.get("members", {}).items():
            yield doc["_id"], member["joined"], {"_id": user_id, "rights": member["rights"]}


def by_circle_events(doc: Dict[str, Any]):
    if doc.get("type") == "invitation":
        yield doc["circle"], None, {"_id": doc["event"]}


def by_event_circles(doc: Dict[str, Any]):
    if doc.get("type") == "invitation":
        yield doc["event"], None, {"_id": doc["circle"]}


def by_event_participants(doc: Dict[str, Any]):
    """Participations of an event, ordered by join date, linked to the user doc."""
    if doc.get("type") == "participant":
        yield doc["event"], doc["date"], {"_id": doc["user"]}


def by_user_dismissals(doc: Dict[str, Any]):
    if doc.get("type") == "dismissal":
        yield doc["user"], None, doc["target"]


VIEWS = {
    BY_EMAIL: by_email,
    BY_SLUG: by_slug,
    BY_USER_CIRCLES: by_user_circles,
    BY_CIRCLE_MEMBERS: by_circle_members,
    BY_CIRCLE_EVENTS: by_circle_events,
    BY_EVENT_CIRCLES: by_event_circles,
    BY_EVENT_PARTICIPANTS: by_event_participants,
    BY_USER_DISMISSALS: by_user_dismissals,
}
