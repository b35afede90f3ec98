"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="GEODISPATCH_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Geodispatch Geocoding & Routing API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level applied by the API entry point.")

    # Geocoding provider
    nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org/",
        description="Base URL of the Nominatim-compatible geocoding provider.",
    )
    geocoder_contact_email: str = Field(
        default="ops@geodispatch.local",
        description="Contact address sent with every request, required by the provider usage policy.",
    )
    geocoder_user_agent: str = Field(
        default="Geodispatch/1.0 (contact: ops@geodispatch.local)",
        description="Identifying User-Agent header sent with every request.",
    )
    geocoder_accept_language: str = Field(default="vi-VN,vi;q=0.9,en;q=0.8")
    default_country_code: str = Field(default="vn", description="ISO country code used for restricted searches.")
    country_suffix: str = Field(default="Việt Nam")
    default_city: str = Field(default="Hồ Chí Minh", description="City appended to stripped fallback candidates.")

    # Rate limiting, timeouts and retries
    min_request_interval_seconds: float = Field(default=0.95, ge=0.0)
    reverse_min_interval_seconds: float = Field(default=1.1, ge=0.0)
    geocode_timeout_seconds: float = Field(default=3.5, gt=0.0)
    origin_timeout_seconds: float = Field(default=5.0, gt=0.0)
    reverse_timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_retries: int = Field(default=1, ge=0)
    rate_limit_backoff_seconds: float = Field(default=0.6, ge=0.0)
    reverse_backoff_seconds: float = Field(default=1.2, ge=0.0)
    max_candidates_to_try: int = Field(default=3, ge=1)
    candidate_cap: int = Field(default=10, ge=1)
    alternate_result_limit: int = Field(default=5, ge=1, le=50)

    # Caches
    negative_cache_ttl_seconds: float = Field(default=600.0, ge=0.0)
    max_stops_to_geocode: int = Field(default=8, ge=0)
    too_vague_min_length: int = Field(default=25, ge=0)

    # Route optimisation
    two_opt_max_passes: int = Field(default=40, ge=0)
    two_opt_epsilon: float = Field(default=1e-9, ge=0.0)
    travel_mode: Literal["driving", "walking", "bicycling", "two-wheeler"] = Field(default="driving")

    # Hubs
    hub_file: Path = Field(
        default=Path("data/hubs.xlsx"),
        description="Workbook with hub locations (Id, Name, Address, Latitude, Longitude, Active).",
    )
    hub_cache_ttl_seconds: float = Field(default=300.0, ge=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("hub_file", mode="before")
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
