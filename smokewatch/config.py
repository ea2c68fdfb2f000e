"""Application configuration loaded from environment variables."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "smokewatch"
    debug: bool = False
    log_level: str = "INFO"

    # History persistence
    history_backend: Literal["file", "memory"] = "file"
    history_dir: str = "./data/history"

    # Geocoding
    geocoder_url: str = "https://nominatim.openstreetmap.org/search"
    geocoder_user_agent: str = "smokewatch/0.1 (watch-point geocoder)"
    geocoder_timeout_seconds: float = 5.0
    geocoder_country_codes: Optional[str] = None
    geocoder_cache_enabled: bool = True

    # Normalisation
    alert_status_tag: str = "smoking"
    require_alert_photo: bool = True
    trust_coordinate_hints: bool = True

    # Registry merge policy: "last_applied" or "latest_timestamp"
    merge_policy: Literal["last_applied", "latest_timestamp"] = "last_applied"
    seed_addresses: list[str] = []
    rebuild_on_startup: bool = True

    # Aggregation
    aggregation_window_days: int = 7
    local_timezone: Optional[str] = None

    # Pipeline
    pipeline_workers: int = 1
    pipeline_queue_size: int = 1000

    model_config = {"env_prefix": "SMOKEWATCH_"}


settings = Settings()
