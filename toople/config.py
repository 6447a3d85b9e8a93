"""
Toople application settings.
"""

from typing import List

from common.config import BaseAppSettings


class Settings(BaseAppSettings):
    """Toople-specific settings."""

    # ==========================================================================
    # Document Store
    # ==========================================================================
    # Server-side limit for every store read (maxTimeMS)
    STORE_MAX_TIME_MS: int = 2000

    # ==========================================================================
    # Feed
    # ==========================================================================
    # Deadline for a whole notification aggregation, all sub-queries included
    FEED_TIMEOUT_SECONDS: float = 5.0

    # ==========================================================================
    # Events
    # ==========================================================================
    # Smallest accepted threshold for a new event
    EVENT_MIN_THRESHOLD: int = 1

    # ==========================================================================
    # Credentials
    # ==========================================================================
    BCRYPT_ROUNDS: int = 12

    def config_errors(self) -> List[str]:
        errors = super().config_errors()
        if self.STORE_MAX_TIME_MS <= 0:
            errors.append("STORE_MAX_TIME_MS must be positive")
        if self.FEED_TIMEOUT_SECONDS <= 0:
            errors.append("FEED_TIMEOUT_SECONDS must be positive")
        if self.EVENT_MIN_THRESHOLD < 1:
            errors.append("EVENT_MIN_THRESHOLD must be at least 1")
        if not 4 <= self.BCRYPT_ROUNDS <= 31:
            errors.append("BCRYPT_ROUNDS must be between 4 and 31")
        return errors


# Global settings instance
settings = Settings()
