"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="MARKETS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Google Maps platform
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="API key used for the Geocoding and Distance Matrix endpoints.",
    )
    geocode_url: str = Field(default="https://maps.googleapis.com/maps/api/geocode/json")
    distance_matrix_url: str = Field(default="https://maps.googleapis.com/maps/api/distancematrix/json")
    http_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Batch resolution
    batch_size: int = Field(default=3, ge=1, description="Targets resolved concurrently per group.")
    batch_delay_seconds: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause between groups to stay under provider rate limits.",
    )
    orchestrator_workers: int = Field(default=4, ge=1)

    # Caching
    distance_ttl_hours: float = Field(default=24.0, gt=0.0)
    origin_bucket_precision: int = Field(
        default=3,
        ge=0,
        le=6,
        description="Decimal places kept when bucketing the user's coordinate.",
    )
    cache_backend: Literal["memory", "file", "supabase"] = Field(default="memory")
    cache_root: Path = Field(default=Path("data/cache"), description="Directory for file-backed caches.")

    # Address canonicalization
    address_suffixes: tuple[str, ...] = Field(
        default=("United States", "USA"),
        description="Trailing country suffixes removed before keys are derived.",
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
    vendor_table: str = "submissions"
    market_table: str = "markets"
    geocode_cache_table: str = "geocode_cache"
    distance_cache_table: str = "distance_cache"

    @field_validator("cache_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("address_suffixes", mode="before")
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


settings = Settings()
