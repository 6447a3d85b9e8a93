"""Circle services."""

from toople.services.circles.circle_service import CircleService
from toople.services.circles.slug import slugify

__all__ = ["CircleService", "slugify"]
