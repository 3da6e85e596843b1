"""Application configuration and settings management."""

from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="SMARTSCHED_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Smart Schedule API"
    api_prefix: str = "/api"

    engine_base_url: Optional[str] = Field(
        default="http://127.0.0.1:5003",
        description="Base URL for the schedule optimization engine.",
    )
    engine_optimize_path: str = Field(
        default="/create-1week-schedule/{user_id}",
        description="Path template of the engine's optimize operation.",
    )
    engine_timeout_seconds: float = Field(default=30.0, gt=0.0)
    engine_connect_timeout_seconds: float = Field(default=10.0, gt=0.0)
    engine_retry_backoff_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Delay before the single retry after the engine was unreachable.",
    )
    engine_supports_protected_dates: bool = Field(
        default=False,
        description="Forward protected dates to the engine as a constraint.",
    )

    cache_ttl_seconds: int = Field(default=300, ge=0)
    schedule_timezone: str = Field(
        default="Europe/London",
        description="Timezone used to resolve 'today' and 'tomorrow' for protected dates.",
    )
    default_start_lat: float = Field(default=51.5074, ge=-90.0, le=90.0)
    default_start_lng: float = Field(default=-0.1278, ge=-180.0, le=180.0)
    capacity_tolerance_minutes: float = Field(
        default=15.0,
        ge=0.0,
        description="Overflow beyond a day's working hours reported as informational only.",
    )

    auth_enabled: bool = Field(
        default=True,
        description="Verify bearer tokens with Supabase. Disable for local development only.",
    )
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase key used to verify user access tokens.",
    )

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:8081",
            "http://127.0.0.1:8081",
            "http://localhost:19006",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("engine_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip().rstrip("/")
            return stripped or None
        return value


settings = Settings()
