"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="QF_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Queue Finder API"
    api_prefix: str = "/api"
    log_level: Literal["critical", "error", "warning", "info", "debug"] = "info"
    data_root: Path = Field(default=Path("data"), description="Root directory for cached files.")

    nfz_api_base_url: str = Field(
        default="https://api.nfz.gov.pl/app-itl-api",
        description="Base URL of the NFZ 'Terminy Leczenia' REST API.",
    )
    nfz_api_version: str = "1.3"
    nfz_api_format: str = "json"
    user_agent: str = "Znajdz-Termin/1.0"
    request_timeout_seconds: float = Field(default=30.0, gt=0.0)
    max_retries: int = Field(default=2, ge=0)
    backoff_seconds: float = Field(default=0.5, ge=0.0)

    api_page_size: int = Field(default=25, ge=1, le=25, description="Records per remote page (API maximum is 25).")
    display_page_size: int = Field(default=20, ge=1)
    load_more_threshold: int = Field(default=5, ge=1)
    max_paged_iterations: int = Field(default=100, ge=1)
    benefit_query_min_length: int = Field(default=3, ge=1)

    geocoding_enabled: bool = True
    geocoder_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        description="Nominatim-compatible geocoding endpoint.",
    )
    geocoder_country_suffix: str = "Polska"
    geocode_memo_size: int = Field(default=2048, ge=1, description="Geocoded queries kept in memory.")

    max_sessions: int = Field(default=200, ge=1)
    session_idle_seconds: float = Field(default=3600.0, gt=0.0, description="Sessions idle longer than this are dropped.")

    download_base_url: str = Field(
        default="https://terminyleczenia.nfz.gov.pl",
        description="Site publishing the legacy per-region Excel exports.",
    )
    spreadsheet_cache_max_age_hours: float = Field(default=24.0, ge=0.0)

    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
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
