"""Domain-level validation rules for scheduling inputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from venue_scheduler.domain.models import EQUIPMENT_TAGS, ROOM_TYPES


@dataclass(frozen=True)
class SearchConfig:
    step_minutes: int
    horizon_steps: int

    @property
    def horizon_minutes(self) -> int:
        return self.step_minutes * self.horizon_steps


def validate_search_config(config: SearchConfig) -> None:
    if config.step_minutes <= 0:
        raise ValueError("step_minutes must be > 0")
    if config.horizon_steps <= 0:
        raise ValueError("horizon_steps must be > 0")


def validate_duration(duration_minutes: int) -> None:
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be > 0")


def validate_room_fields(
    *,
    name: str,
    capacity: int,
    room_type: str,
    equipment: Iterable[str],
) -> None:
    if not name.strip():
        raise ValueError("room name must be non-empty")
    if capacity < 1:
        raise ValueError("capacity must be >= 1")
    if room_type not in ROOM_TYPES:
        raise ValueError(f"room_type must be one of {', '.join(ROOM_TYPES)}")
    unknown = sorted(set(equipment) - set(EQUIPMENT_TAGS))
    if unknown:
        raise ValueError(f"unknown equipment tags: {', '.join(unknown)}")
