"""
Optional post-processing of a feed: "Alice and 3 others joined Climbers".

Not applied by FeedService; callers that want grouped output run the feed
through group_membership_notifications().
"""

from typing import List

from toople.models import MembershipNotification, Notification


def group_membership_notifications(notifications: List[Notification]) -> List[Notification]:
    """
    Collapse runs of consecutive membership notifications for one circle.

    The first (most recent) notification of a run is kept and its `others`
    counts the notifications folded into it. The input is not modified.
    """
    grouped: List[Notification] = []
    for notification in notifications:
        previous = grouped[-1] if grouped else None
        if (
            isinstance(notification, MembershipNotification)
            and isinstance(previous, MembershipNotification)
            and previous.circle.id == notification.circle.id
        ):
            grouped[-1] = previous.model_copy(
                update={"others": previous.others + 1 + notification.others}
            )
            continue
        grouped.append(notification)
    return grouped
