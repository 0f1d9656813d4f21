"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="WFR_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Welfare Transport Route Optimizer API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for selections and run outputs.")
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase record store
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase key used to read facility, rider, vehicle and driver records.",
    )

    # Distance service
    distance_proxy_url: Optional[str] = Field(
        default=None,
        description="Base URL of the maps proxy function (e.g., https://xxx.supabase.co/functions/v1/google-maps-proxy).",
    )
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="API key for direct Google Distance Matrix requests.",
    )
    distance_timeout_seconds: float = Field(default=30.0, gt=0.0)
    distance_max_retries: int = Field(default=0, ge=0)
    distance_backoff_seconds: float = Field(default=1.0, ge=0.0)
    distance_max_parallel_requests: int = Field(default=8, ge=1)
    average_speed_kmh: float = Field(
        default=40.0,
        gt=0.0,
        description="Urban driving speed used when a leg has to be estimated from straight-line distance.",
    )
    anomaly_leg_distance_m: float = Field(default=1_000_000.0, gt=0.0)
    anomaly_leg_duration_s: float = Field(default=36_000.0, gt=0.0)
    zero_totals_on_distance_failure: bool = Field(
        default=True,
        description="Report zero totals when the distance call fails; False estimates every leg from straight-line distance.",
    )

    # Planning
    time_window_minutes: int = Field(default=30, ge=1, le=60)
    wheelchair_cluster_radius_m: float = Field(default=100.0, ge=0.0)
    regular_cluster_radius_m: float = Field(default=500.0, ge=0.0)
    sequencing_metric: Literal["euclidean", "haversine"] = Field(
        default="euclidean",
        description="Distance used by the nearest-neighbour stop ordering.",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

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
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
