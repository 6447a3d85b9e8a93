"""
Notification services.

Builds the per-user activity feed and records dismissals.
"""

from toople.services.notifications.feed_service import FeedService
from toople.services.notifications.grouping import group_membership_notifications

__all__ = ["FeedService", "group_membership_notifications"]
