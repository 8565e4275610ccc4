"""Tests for room eligibility and conflict detection."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from venue_scheduler.domain.models import Reservation, Room
from venue_scheduler.services.availability_service import (
    SchedulingValidationError,
    filter_rooms,
    find_conflicts,
    is_available,
)


def make_room(room_id: int, capacity: int = 10, is_active: bool = True) -> Room:
    return Room(
        room_id=room_id,
        name=f"Room {room_id}",
        capacity=capacity,
        floor=1,
        room_type="small",
        is_active=is_active,
    )


def make_reservation(
    reservation_id: int,
    room_id: int,
    start: str,
    minutes: int,
    status: str = "active",
) -> Reservation:
    start_time = datetime.fromisoformat(start)
    return Reservation(
        reservation_id=reservation_id,
        room_id=room_id,
        start_time=start_time,
        end_time=start_time + timedelta(minutes=minutes),
        status=status,
    )


# --- room filter ---

def test_filter_keeps_active_rooms_that_fit_in_order() -> None:
    rooms = [make_room(1, 10), make_room(2, 4), make_room(3, 6), make_room(4, 20, is_active=False)]
    assert [room.room_id for room in filter_rooms(rooms, 5)] == [1, 3]


def test_filter_with_zero_attendees_skips_capacity() -> None:
    rooms = [make_room(1, 2), make_room(2, 1), make_room(3, 8, is_active=False)]
    assert [room.room_id for room in filter_rooms(rooms, 0)] == [1, 2]
    assert [room.room_id for room in filter_rooms(rooms, None)] == [1, 2]


def test_raising_attendee_count_never_adds_rooms() -> None:
    rooms = [make_room(index, capacity) for index, capacity in enumerate((2, 4, 6, 10, 24), start=1)]
    previous = {room.room_id for room in filter_rooms(rooms, 1)}
    for count in range(2, 30):
        current = {room.room_id for room in filter_rooms(rooms, count)}
        assert current <= previous
        previous = current


# --- conflicts ---

def test_empty_room_is_available() -> None:
    assert is_available(1, "2024-03-01", "09:00", 45, [])


def test_overlapping_active_reservation_conflicts() -> None:
    existing = [make_reservation(7, 1, "2024-03-01T09:00", 60)]
    conflicts = find_conflicts(1, "2024-03-01", "09:30", 30, existing)
    assert [item.reservation_id for item in conflicts] == [7]
    assert not is_available(1, "2024-03-01", "09:30", 30, existing)


def test_back_to_back_booking_is_available() -> None:
    existing = [make_reservation(7, 1, "2024-03-01T09:00", 60)]
    assert is_available(1, "2024-03-01", "10:00", 30, existing)
    assert is_available(1, "2024-03-01", "08:30", 30, existing)


def test_cancelled_reservation_never_blocks() -> None:
    existing = [make_reservation(7, 1, "2024-03-01T09:00", 60, status="cancelled")]
    assert is_available(1, "2024-03-01", "09:00", 60, existing)


def test_other_room_reservation_never_blocks() -> None:
    existing = [make_reservation(7, 2, "2024-03-01T09:00", 60)]
    assert is_available(1, "2024-03-01", "09:00", 60, existing)


def test_excluded_reservation_is_ignored_when_editing() -> None:
    existing = [make_reservation(7, 1, "2024-03-01T09:00", 60)]
    assert not is_available(1, "2024-03-01", "09:30", 60, existing)
    assert is_available(1, "2024-03-01", "09:30", 60, existing, exclude_reservation_id=7)


def test_conflict_spanning_midnight_is_detected() -> None:
    existing = [make_reservation(7, 1, "2024-03-01T23:30", 60)]
    assert not is_available(1, "2024-03-02", "00:00", 30, existing)


@pytest.mark.parametrize(
    ("date_value", "time_value", "duration"),
    [("2024-02-30", "09:00", 30), ("2024-03-01", "9:00pm", 30), ("2024-03-01", "09:00", 0)],
)
def test_malformed_requests_raise_validation_error(date_value: str, time_value: str, duration: int) -> None:
    with pytest.raises(SchedulingValidationError):
        is_available(1, date_value, time_value, duration, [])
