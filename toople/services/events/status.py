"""
Event status derivation.

Status is a pure function of the threshold, the participants who joined
strictly before the scheduled date, the scheduled date and the current
time. It is recomputed on every read and never stored.
"""

from datetime import datetime
from typing import Iterable

from common.utils.exceptions import InconsistencyException
from toople.models import EventStatus


def derive_status(
    threshold: int,
    participants_before_date: int,
    scheduled_date: datetime,
    now: datetime,
) -> EventStatus:
    """
    Derive an event's status.

    Confirmed once the headcount reaches the threshold; otherwise Cancelled
    if the date has passed, Pending if not.
    """
    if participants_before_date >= threshold:
        return EventStatus.CONFIRMED
    if scheduled_date < now:
        return EventStatus.CANCELLED
    return EventStatus.PENDING


def count_joined_before(join_dates: Iterable[datetime], scheduled_date: datetime) -> int:
    return sum(1 for joined in join_dates if joined < scheduled_date)


def status_from_participations(
    event_id: str,
    threshold: int,
    join_dates: Iterable[datetime],
    scheduled_date: datetime,
    now: datetime,
) -> EventStatus:
    """
    Derive status from the raw join dates of an event.

    Raises:
        InconsistencyException: If the event has no participants
    """
    join_dates = list(join_dates)
    if not join_dates:
        raise InconsistencyException(
            message=f"Event {event_id} has no participants",
            details={"eventId": event_id},
        )
    return derive_status(
        threshold,
        count_joined_before(join_dates, scheduled_date),
        scheduled_date,
        now,
    )
