from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from workforce_api.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Workforce API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for a multi-tenant business workspace. "
            "Provides employee scheduling, open-shift claiming, shift swaps and module gating."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Tokens
    JWT_SECRET_KEY: str = Field(default="change-me", description="HMAC secret used to sign JWTs")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7)

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, seed the module catalog and a demo business after migrations.",
    )

    # Scheduling
    SWAP_REQUEST_TTL_DAYS: int = Field(
        default=7, description="Days before a pending shift swap request expires."
    )
    DEFAULT_SCHEDULE_TIMEZONE: str = Field(default="America/New_York")

    # Demo business created by seeding
    DEFAULT_TENANT_SLUG: str = Field(default="demo")
    SEED_ADMIN_EMAIL: str = Field(default="admin@demo-business.com")
    SEED_ADMIN_PASSWORD: str = Field(default="change-me-now")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
@lru_cache
def get_app_settings() -> AppSettings:
    """Return the process-wide AppSettings populated from environment variables."""
    return AppSettings()
