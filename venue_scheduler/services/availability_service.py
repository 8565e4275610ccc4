"""Room eligibility and conflict detection over a reservation snapshot."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from venue_scheduler.domain.constraints import validate_duration
from venue_scheduler.domain.intervals import Interval, overlaps, window
from venue_scheduler.domain.models import Reservation, Room
from venue_scheduler.repository.data_repository import DataRepository
from venue_scheduler.utils.config import Settings, get_settings
from venue_scheduler.utils.logger import get_logger


logger = get_logger(__name__)


class SchedulingValidationError(Exception):
    """Raised when a date, time or duration cannot describe a booking window."""


def requested_window(date: str, start_time: str, duration_minutes: int) -> Interval:
    try:
        validate_duration(duration_minutes)
    except ValueError as exc:
        raise SchedulingValidationError(str(exc)) from exc
    try:
        return window(date, start_time, duration_minutes)
    except ValueError as exc:
        raise SchedulingValidationError(
            f"invalid date/time '{date} {start_time}'; expected YYYY-MM-DD and HH:mm"
        ) from exc


def filter_rooms(rooms: Iterable[Room], attendee_count: Optional[int] = None) -> list[Room]:
    """Active rooms that seat everyone, in input order.

    A zero or missing attendee count skips the capacity check so every
    active room qualifies.
    """
    return [
        room
        for room in rooms
        if room.is_active and (not attendee_count or room.capacity >= attendee_count)
    ]


def find_conflicts(
    room_id: int,
    date: str,
    start_time: str,
    duration_minutes: int,
    reservations: Sequence[Reservation],
    exclude_reservation_id: Optional[int] = None,
) -> list[Reservation]:
    requested = requested_window(date, start_time, duration_minutes)
    return [
        reservation
        for reservation in reservations
        if reservation.room_id == room_id
        and reservation.is_active
        and reservation.reservation_id != exclude_reservation_id
        and overlaps(requested, reservation.interval)
    ]


def is_available(
    room_id: int,
    date: str,
    start_time: str,
    duration_minutes: int,
    reservations: Sequence[Reservation],
    exclude_reservation_id: Optional[int] = None,
) -> bool:
    return not find_conflicts(
        room_id,
        date,
        start_time,
        duration_minutes,
        reservations,
        exclude_reservation_id,
    )


class AvailabilityService:
    """Answers availability questions against a freshly read snapshot."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def check(
        self,
        *,
        room_id: int,
        date: str,
        start_time: str,
        duration_minutes: int,
        exclude_reservation_id: Optional[int] = None,
    ) -> list[Reservation]:
        """Return the conflicting reservations; an empty list means the room is free."""
        snapshot = self._repository.list_reservations(room_id=room_id, status="active")
        conflicts = find_conflicts(
            room_id,
            date,
            start_time,
            duration_minutes,
            snapshot,
            exclude_reservation_id,
        )
        logger.debug(
            "Availability checked | room_id=%s | date=%s | time=%s | duration=%s | conflicts=%s",
            room_id,
            date,
            start_time,
            duration_minutes,
            len(conflicts),
        )
        return conflicts
