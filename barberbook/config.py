# barberbook/config.py

"""
Configuration module - all environment variables are read here.

Use get_settings() everywhere instead of os.getenv().
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = Field(
        default="sqlite:///./barberbook.db",
        description="SQLAlchemy connection string",
    )
    SQL_ECHO: bool = Field(default=False)

    # Auth
    SECRET_KEY: str = Field(default="change-me-later")
    ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30)

    # Scheduling
    TIMEZONE: str = Field(
        default="Europe/Paris",
        description="Reference timezone for 'date + HH:MM' inputs and day queries",
    )
    DEFAULT_SERVICE_MINUTES: int = Field(default=30)
    DEFAULT_BLOCK_MINUTES: int = Field(default=30)
    UNBLOCK_TOLERANCE_SECONDS: int = Field(default=30)

    # Side effects
    SIDE_EFFECT_RETRIES: int = Field(
        default=2,
        description="Extra attempts for a failed background job before giving up",
    )

    # Push notifications (Firebase Cloud Messaging)
    PUSH_ENABLED: bool = Field(default=False)
    FIREBASE_PROJECT_ID: str | None = Field(default=None)
    FIREBASE_CREDENTIALS_FILE: str | None = Field(
        default=None,
        description="Service account JSON; application default credentials when unset",
    )

    # Application
    LOG_LEVEL: str = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process.
    """
    return Settings()
