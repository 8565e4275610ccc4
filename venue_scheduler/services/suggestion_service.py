"""Forward slot search for the earliest free room/time alternative."""

from __future__ import annotations

from typing import Optional, Sequence

from venue_scheduler.domain.constraints import SearchConfig, validate_search_config
from venue_scheduler.domain.intervals import add_minutes, format_date, format_time
from venue_scheduler.domain.models import (
    Reservation,
    Room,
    SchedulingRequest,
    Suggestion,
    SuggestionFailure,
    SuggestionResult,
)
from venue_scheduler.repository.data_repository import DataRepository
from venue_scheduler.services.availability_service import (
    filter_rooms,
    is_available,
    requested_window,
)
from venue_scheduler.utils.config import Settings, get_settings
from venue_scheduler.utils.logger import get_logger


logger = get_logger(__name__)

NO_ROOMS_MESSAGE = "No rooms large enough for this meeting."
DEFAULT_SEARCH_CONFIG = SearchConfig(step_minutes=30, horizon_steps=16)


def horizon_exhausted_message(config: SearchConfig) -> str:
    hours = config.horizon_minutes / 60
    return f"No alternative slots found in the next {hours:g} hours."


def suggest(
    candidate_rooms: Sequence[Room],
    attendee_count: int,
    preferred_date: str,
    preferred_time: str,
    duration_minutes: int,
    reservations: Sequence[Reservation],
    exclude_reservation_id: Optional[int] = None,
    config: SearchConfig = DEFAULT_SEARCH_CONFIG,
) -> SuggestionResult:
    """Walk forward step by step and return the first free (room, date, time).

    The preferred time itself is not retried: the first candidate is one
    step later. Time steps form the outer loop and rooms the inner one,
    so the earliest time wins and list order breaks ties.
    """
    validate_search_config(config)
    rooms = filter_rooms(candidate_rooms, attendee_count)
    if not rooms:
        return SuggestionFailure(error=NO_ROOMS_MESSAGE)

    search_time = requested_window(preferred_date, preferred_time, duration_minutes).start
    for _ in range(config.horizon_steps):
        search_time = add_minutes(search_time, config.step_minutes)
        date_str = format_date(search_time)
        time_str = format_time(search_time)
        for room in rooms:
            if is_available(
                room.room_id,
                date_str,
                time_str,
                duration_minutes,
                reservations,
                exclude_reservation_id,
            ):
                return Suggestion(room=room, date=date_str, time=time_str)

    return SuggestionFailure(error=horizon_exhausted_message(config))


class SuggestionService:
    """Runs the forward search against the current room and reservation state."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    @property
    def search_config(self) -> SearchConfig:
        return SearchConfig(
            step_minutes=self._settings.search_step_minutes,
            horizon_steps=self._settings.search_horizon_steps,
        )

    def suggest(
        self,
        request: SchedulingRequest,
        room_ids: Optional[Sequence[int]] = None,
    ) -> SuggestionResult:
        rooms = self._repository.list_rooms()
        if room_ids:
            wanted = set(room_ids)
            rooms = [room for room in rooms if room.room_id in wanted]
        reservations = self._repository.list_reservations(status="active")
        result = suggest(
            rooms,
            request.attendee_count,
            request.date,
            request.start_time,
            request.duration_minutes,
            reservations,
            request.exclude_reservation_id,
            config=self.search_config,
        )
        if isinstance(result, Suggestion):
            logger.info(
                "Suggestion found | room_id=%s | date=%s | time=%s",
                result.room.room_id,
                result.date,
                result.time,
            )
        else:
            logger.info("Suggestion unavailable | reason=%s", result.error)
        return result
