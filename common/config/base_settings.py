"""
Base settings for services built on the common library.

Values come from the environment or a ``.env`` file (pydantic-settings).
Applications subclass BaseAppSettings and extend `config_errors` with
their own checks.

Example:
    from common.config import BaseAppSettings

    class Settings(BaseAppSettings):
        FEED_TIMEOUT_SECONDS: float = 5.0

    settings = Settings()
    settings.validate_required()
"""

from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENVIRONMENTS = ("development", "staging", "production")


class BaseAppSettings(BaseSettings):
    """Connection, token and server settings shared by every app."""

    # ==========================================================================
    # Document Store
    # ==========================================================================
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "toople"
    MONGODB_COLLECTION: str = "documents"

    # ==========================================================================
    # Tokens
    # ==========================================================================
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # ==========================================================================
    # Server
    # ==========================================================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "*"  # comma-separated, or "*"
    CORS_ALLOW_CREDENTIALS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    @field_validator("ENVIRONMENT")
    @classmethod
    def _known_environment(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ENVIRONMENTS:
            raise ValueError(f"ENVIRONMENT must be one of {', '.join(ENVIRONMENTS)}")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper()

    def get_cors_origins(self) -> List[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    def config_errors(self) -> List[str]:
        """Problems that should stop the app from starting."""
        errors = []
        if not self.JWT_SECRET:
            errors.append("JWT_SECRET is required")
        if self.is_production() and "*" in self.get_cors_origins():
            errors.append("CORS_ORIGINS must be restricted in production")
        return errors

    def validate_required(self) -> None:
        """
        Raises:
            ValueError: listing every configuration problem found
        """
        errors = self.config_errors()
        if errors:
            raise ValueError("Configuration errors:\n- " + "\n- ".join(errors))
