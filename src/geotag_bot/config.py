"""Application configuration."""

import os
from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    supabase_url: str
    supabase_service_key: str
    admin_token: str
    telegram_allowed_user_ids: str | None = None
    maps_api_key: str | None = None
    maps_base_url: str = "https://maps.googleapis.com/maps/api"
    maps_language: str = "id"
    map_zoom: int = 15
    map_size_px: int = 200
    display_timezone: str = "Asia/Jakarta"
    display_timezone_label: str = "WIB"
    batch_delay_seconds: float = 2.0
    geocode_timeout_seconds: float = 10.0
    map_timeout_seconds: float = 15.0
    geocode_cache_ttl_seconds: int = 3600
    session_idle_ttl_seconds: int | None = None
    session_sweep_interval_seconds: int = 300
    coord_max_abs_latitude: float = 85.0
    coord_min_abs_value: float = 0.001
    coord_small_pair_limit: float = 1.0
    coord_reject_integer_pairs: bool = True
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def coordinate_filter(self) -> "CoordinateFilter":
        """Return the realism thresholds for coordinates typed as text."""
        return CoordinateFilter(
            max_abs_latitude=self.coord_max_abs_latitude,
            min_abs_value=self.coord_min_abs_value,
            small_pair_limit=self.coord_small_pair_limit,
            reject_integer_pairs=self.coord_reject_integer_pairs,
        )


@dataclass(frozen=True)
class CoordinateFilter:
    """Heuristic thresholds that reject unlikely coordinate pairs.

    These are anti-false-positive filters for free text, not geographic rules:
    numbers like ``12, 30`` are more often readings than positions.
    """

    max_abs_latitude: float = 85.0
    min_abs_value: float = 0.001
    small_pair_limit: float = 1.0
    reject_integer_pairs: bool = True


def parse_allowed_user_ids(raw: str | None) -> set[int] | None:
    """Parse allowed Telegram user IDs from env."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return None
    ids: set[int] = set()
    for chunk in cleaned.split(","):
        value = chunk.strip()
        if not value:
            continue
        if value.isdigit():
            ids.add(int(value))
    return ids or None
