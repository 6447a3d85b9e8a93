"""
Domain read models.

Store documents are decoded into these models once, at the service
boundary; everything above the services works with typed values. The feed
is a discriminated union of EventNotification and MembershipNotification,
tagged by `kind`.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

RIGHT_POST = "post"
RIGHT_INVITE = "invite"
RIGHT_ADMIN = "admin"
ALL_RIGHTS = (RIGHT_POST, RIGHT_INVITE, RIGHT_ADMIN)

Right = Literal["post", "invite", "admin"]


class EventStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class User(BaseModel):
    """A user; emails[0] is the primary email."""
    id: str
    name: str
    emails: List[str]

    @property
    def primaryEmail(self) -> str:
        return self.emails[0]

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "User":
        return cls(id=doc["_id"], name=doc["name"], emails=list(doc.get("emails", [])))


class UserRef(BaseModel):
    """Reference to a user; name is None once the user document is gone."""
    id: str
    name: Optional[str] = None


class Membership(BaseModel):
    rights: List[str]
    joined: datetime


class Member(BaseModel):
    """A circle member with display name."""
    id: str
    name: Optional[str] = None
    rights: List[str]
    joined: datetime


class Circle(BaseModel):
    id: str
    name: str
    slug: str
    members: Dict[str, Membership] = Field(default_factory=dict)

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "Circle":
        return cls(
            id=doc["_id"],
            name=doc["name"],
            slug=doc["slug"],
            members={
                user_id: Membership(rights=list(m["rights"]), joined=m["joined"])
                for user_id, m in doc.get("members", {}).items()
            },
        )


class CircleRef(BaseModel):
    id: str
    name: str
    slug: str


class Participant(BaseModel):
    id: str
    name: Optional[str] = None
    joined: datetime


class Event(BaseModel):
    """An event with its derived status."""
    id: str
    location: str
    title: str
    info: str = ""
    date: datetime
    created: datetime
    threshold: int
    status: EventStatus
    creator: Participant
    participants: List[Participant]
    circles: List[str] = Field(default_factory=list)


class EventNotification(BaseModel):
    """Feed entry for an event; `id` is the event id and the dismissal key."""
    kind: Literal["event"] = "event"
    id: str
    date: datetime  # scheduled date
    event: Event


class MembershipNotification(BaseModel):
    """Feed entry for a circle join; `id` is `<circle-id>:<user-id>`."""
    kind: Literal["membership"] = "membership"
    id: str
    date: datetime  # join date
    user: UserRef
    circle: CircleRef
    me: bool = False
    # Set by the optional grouping stage: number of further joins folded in
    others: int = 0

    @staticmethod
    def key(circle_id: str, user_id: str) -> str:
        return f"{circle_id}:{user_id}"


Notification = Annotated[
    Union[EventNotification, MembershipNotification],
    Field(discriminator="kind"),
]
