# meetsync/core/config.py
from functools import lru_cache

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (and an optional `.env` file)
    at runtime.

    Covers:
    - DB connection
    - OAuth client credentials for every supported provider
    - Internal API key
    - SMTP settings for booking notifications
    - Fan-out limits for provider calls
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "meetsync"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the service.")

    BASE_URL: AnyHttpUrl = Field(
        "http://localhost:3000",
        description="Public base URL used to build cancel/reschedule links.",
    )

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./meetsync.db",
        description="SQLAlchemy-compatible database URL",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )

    # --- Provider OAuth / API credentials ---
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    MS_GRAPH_CLIENT_ID: str | None = None
    MS_GRAPH_CLIENT_SECRET: str | None = None
    ZOOM_CLIENT_ID: str | None = None
    ZOOM_CLIENT_SECRET: str | None = None
    DAILY_API_KEY: str | None = Field(
        default=None,
        description=(
            "Daily.co API key. When set, every booking gets an implicit Daily "
            "video credential."
        ),
    )

    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout applied to every outbound provider HTTP call.",
    )
    AVAILABILITY_CONCURRENCY: int = Field(
        default=5,
        ge=1,
        description="Maximum number of provider busy-time queries in flight at once.",
    )

    # --- SMTP / Email configuration ---
    SMTP_HOST: str | None = Field(
        default=None,
        description="SMTP server hostname for sending emails.",
    )
    SMTP_PORT: int = Field(
        default=587,
        description="SMTP server port (usually 587 for TLS).",
    )
    SMTP_USERNAME: str | None = Field(
        default=None,
        description="SMTP username (if authentication is required).",
    )
    SMTP_PASSWORD: str | None = Field(
        default=None,
        description="SMTP password (if authentication is required).",
    )
    SMTP_USE_TLS: bool = Field(
        default=True,
        description="Whether to use STARTTLS when connecting to SMTP.",
    )
    SMTP_FROM_ADDRESS: str | None = Field(
        default=None,
        description="From address used in booking notification emails.",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
