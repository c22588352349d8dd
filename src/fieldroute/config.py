"""Application configuration and settings management."""

from datetime import time
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FRO_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Field Route Optimizer API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logging level for the service.")

    distance_unit: Literal["mi", "km"] = Field(
        default="mi",
        description="Unit for every distance the optimizer reports.",
    )
    road_factor: float = Field(
        default=1.3,
        gt=0.0,
        description="Multiplier turning straight-line distance into an approximate road distance.",
    )
    minutes_per_mile: float = Field(
        default=2.5,
        gt=0.0,
        description="Average driving pace in mixed urban/suburban traffic.",
    )
    fallback_travel_minutes: float = Field(
        default=15.0,
        ge=0.0,
        description="Travel time assumed for a leg whose endpoints are not geocoded.",
    )

    default_job_duration_minutes: int = Field(default=60, ge=1)
    default_work_start: time = Field(default=time(8, 0))
    default_work_end: time = Field(default=time(18, 0))
    default_max_jobs: int = Field(default=10, ge=0)

    assignment_strategy: Literal["nearest_centroid", "round_robin"] = Field(
        default="nearest_centroid",
        description="How unpinned jobs are distributed across technicians.",
    )
    two_opt_enabled: bool = Field(
        default=False,
        description="Run a 2-opt improvement pass after nearest-neighbor sequencing.",
    )
    two_opt_max_passes: int = Field(default=50, ge=1)
    low_efficiency_threshold: float = Field(default=70.0, ge=0.0, le=100.0)

    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    osrm_max_retries: int = Field(default=3, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    osrm_timeout_seconds: float = Field(default=30.0, gt=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
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
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        return tuple()

    @model_validator(mode="after")
    def _check_working_hours(self) -> "Settings":
        if self.default_work_end <= self.default_work_start:
            raise ValueError("default_work_end must be later than default_work_start")
        return self


settings = Settings()
