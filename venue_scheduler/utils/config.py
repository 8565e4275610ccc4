"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_durations(name: str, default: tuple[int, ...]) -> tuple[int, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    return tuple(int(item) for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    admin_token: str | None
    search_step_minutes: int
    search_horizon_steps: int
    grid_slot_minutes: int
    grid_day_start: str
    grid_day_end: str
    allowed_durations: tuple[int, ...]
    time_regex: str
    seed_demo_data: bool


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings once per process; tests call cache_clear() to reload."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Venue Scheduler"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_path=Path(os.getenv("DATABASE_PATH", "data/venue_scheduler.db")),
        admin_token=os.getenv("ADMIN_TOKEN") or None,
        search_step_minutes=int(os.getenv("SEARCH_STEP_MINUTES", "30")),
        search_horizon_steps=int(os.getenv("SEARCH_HORIZON_STEPS", "16")),
        grid_slot_minutes=int(os.getenv("GRID_SLOT_MINUTES", "30")),
        grid_day_start=os.getenv("GRID_DAY_START", "08:00"),
        grid_day_end=os.getenv("GRID_DAY_END", "20:00"),
        allowed_durations=_env_durations("ALLOWED_DURATIONS", (30, 45, 60, 90)),
        time_regex=r"^([01]\d|2[0-3]):[0-5]\d$",
        seed_demo_data=_env_bool("SEED_DEMO_DATA", True),
    )
