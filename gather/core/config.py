"""Application configuration."""

import os
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden with environment variables.
    """

    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Gather"

    # Critical settings (must be provided)
    JWT_SECRET_KEY: str
    APP_DATABASE_URL: str

    # Database pool
    POOL_SIZE: int = 10
    MAX_OVERFLOW: int = 20
    POOL_RECYCLE: int = 3600
    POOL_TIMEOUT: int = 30
    POOL_PRE_PING: bool = True
    SQL_ECHO: bool = False

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # JWT
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "").lower() == "true"

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Membership
    MEMBERSHIP_CACHE_TTL_SECONDS: int = 30
    JOIN_REQUEST_COOLDOWN_HOURS: int = 24

    # Rate Limiting
    JOIN_REQUEST_RATE_LIMIT_PER_MINUTE: int = 5

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables
    )

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)

        # Validate critical settings
        critical_settings = [
            ("JWT_SECRET_KEY", self.JWT_SECRET_KEY),
            ("APP_DATABASE_URL", self.APP_DATABASE_URL),
        ]

        missing_settings = [name for name, value in critical_settings if not value]
        if missing_settings:
            raise ValueError(
                f"Critical settings missing: {', '.join(missing_settings)}"
            )


# Create global settings instance
settings = Settings()

# Validate required settings in production
if os.getenv("ENVIRONMENT") == "production":
    assert settings.JWT_SECRET_KEY, "JWT_SECRET_KEY must be set in production"
    assert not settings.APP_DATABASE_URL.startswith(
        "sqlite"
    ), "SQLite is not supported in production"
