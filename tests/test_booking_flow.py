"""Integration tests for reservation writes against a temporary SQLite store."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from pathlib import Path

import pytest

from venue_scheduler.domain.models import Meeting, Room
from venue_scheduler.repository.data_repository import (
    DataRepository,
    RepositoryError,
    SlotUnavailableError,
)
from venue_scheduler.services.booking_service import (
    BookingConflictError,
    BookingService,
    BookingValidationError,
    MeetingNotFoundError,
)
from venue_scheduler.utils.config import get_settings


def _build_service(tmp_path: Path) -> tuple[BookingService, DataRepository]:
    settings = replace(
        get_settings(),
        database_path=tmp_path / "booking_test.db",
        seed_demo_data=False,
    )
    repository = DataRepository(settings)
    repository.initialize_database()
    return BookingService(repository=repository, settings=settings), repository


def _seed_people(repository: DataRepository) -> None:
    repository.create_user("ada", "Ada Lovelace")
    repository.create_user("alan", "Alan Turing")
    repository.create_user("grace", "Grace Hopper", notify_booking_confirmed=False)


def _alpine(repository: DataRepository, capacity: int = 10) -> Room:
    return repository.create_room(
        name="Alpine",
        capacity=capacity,
        floor=1,
        room_type="large",
        equipment=("Wifi", "Projector"),
    )


def _meeting(repository: DataRepository, duration: int = 45) -> Meeting:
    return repository.create_meeting(
        requester_id="ada",
        recipient_ids=("alan", "grace", "linus"),
        proposed_duration=duration,
        proposed_topic="Quarterly review",
    )


def test_booking_commits_requested_window(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)
    meeting = _meeting(repository)

    reservation = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )

    assert reservation.start_time == datetime(2024, 3, 1, 9, 0)
    assert reservation.end_time == datetime(2024, 3, 1, 9, 45)
    assert reservation.status == "active"
    assert reservation.room_name == "Alpine"
    stored_meeting = repository.get_meeting(meeting.meeting_id)
    assert stored_meeting is not None
    assert stored_meeting.venue_booking_id == reservation.reservation_id


def test_new_booking_notifies_participants_except_actor(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    _seed_people(repository)
    room = _alpine(repository)
    meeting = _meeting(repository)

    service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )

    # grace opted out of booking confirmations; linus has no profile.
    assert repository.list_notifications("ada") == []
    assert [event.title for event in repository.list_notifications("alan")] == ["Venue Confirmed"]
    assert repository.list_notifications("grace") == []
    assert repository.count_notifications() == 1


def test_rebooking_moves_reservation_in_place(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    _seed_people(repository)
    room = _alpine(repository)
    meeting = _meeting(repository, duration=60)

    first = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )
    # Overlaps its own old slot, which must not count as a conflict.
    moved = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:30",
        booked_by="ada",
    )

    assert moved.reservation_id == first.reservation_id
    assert moved.start_time == datetime(2024, 3, 1, 9, 30)
    assert len(repository.list_reservations()) == 1
    titles = [event.title for event in repository.list_notifications("ada")]
    assert titles == ["Meeting Venue Updated"]


def test_booking_overlapping_slot_raises_conflict(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)
    first = _meeting(repository, duration=60)
    second = _meeting(repository, duration=30)

    service.book_meeting(
        meeting_id=first.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )
    with pytest.raises(BookingConflictError):
        service.book_meeting(
            meeting_id=second.meeting_id,
            room_id=room.room_id,
            date="2024-03-01",
            start_time="09:30",
            booked_by="ada",
        )

    back_to_back = service.book_meeting(
        meeting_id=second.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="10:00",
        booked_by="ada",
    )
    assert back_to_back.start_time == datetime(2024, 3, 1, 10, 0)


def test_booking_rejects_small_room(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository, capacity=2)
    meeting = _meeting(repository)

    with pytest.raises(BookingValidationError):
        service.book_meeting(
            meeting_id=meeting.meeting_id,
            room_id=room.room_id,
            date="2024-03-01",
            start_time="09:00",
            booked_by="ada",
        )
    assert repository.list_reservations() == []


def test_booking_unknown_meeting_raises(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)
    with pytest.raises(MeetingNotFoundError):
        service.book_meeting(
            meeting_id=999,
            room_id=room.room_id,
            date="2024-03-01",
            start_time="09:00",
            booked_by="ada",
        )


def test_store_backstop_rejects_overlap_that_skipped_the_check(tmp_path: Path) -> None:
    _, repository = _build_service(tmp_path)
    room = _alpine(repository)
    repository.create_reservation(
        room=room,
        start_time=datetime(2024, 3, 1, 9, 0),
        end_time=datetime(2024, 3, 1, 10, 0),
        booked_by="ada",
    )

    with pytest.raises(SlotUnavailableError):
        repository.create_reservation(
            room=room,
            start_time=datetime(2024, 3, 1, 9, 30),
            end_time=datetime(2024, 3, 1, 10, 30),
            booked_by="alan",
        )
    assert len(repository.list_reservations()) == 1


def test_store_failure_leaves_meeting_unlinked(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)
    meeting = _meeting(repository)

    def failing_create(**kwargs):
        raise RepositoryError("Write failed: disk I/O error")

    monkeypatch.setattr(repository, "create_reservation", failing_create)
    with pytest.raises(RepositoryError):
        service.book_meeting(
            meeting_id=meeting.meeting_id,
            room_id=room.room_id,
            date="2024-03-01",
            start_time="09:00",
            booked_by="ada",
        )

    stored = repository.get_meeting(meeting.meeting_id)
    assert stored is not None
    assert stored.venue_booking_id is None
    assert repository.count_notifications() == 0


def test_notification_failure_keeps_the_booking(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    service, repository = _build_service(tmp_path)
    _seed_people(repository)
    room = _alpine(repository)
    meeting = _meeting(repository)

    def failing_notify(event):
        raise RepositoryError("notifications table locked")

    monkeypatch.setattr(repository, "create_notification", failing_notify)
    reservation = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )
    assert repository.get_reservation(reservation.reservation_id) is not None


def test_cancel_twice_is_a_no_op(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    _seed_people(repository)
    room = _alpine(repository)
    reservation = service.create_private_reservation(
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        end_time="10:00",
        topic="Board interviews",
        booked_by="admin",
    )
    notifications_before = repository.count_notifications()

    first = service.cancel_reservation(reservation.reservation_id)
    second = service.cancel_reservation(reservation.reservation_id)

    assert first.status == "cancelled"
    assert second.status == "cancelled"
    assert repository.count_notifications() == notifications_before


def test_cancelled_slot_can_be_booked_again(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)
    meeting = _meeting(repository)
    reservation = service.create_private_reservation(
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        end_time="10:00",
        topic="Hold",
        booked_by="admin",
    )
    service.cancel_reservation(reservation.reservation_id)

    rebooked = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )
    assert rebooked.status == "active"


def test_cancel_meeting_releases_venue_and_notifies(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    _seed_people(repository)
    room = _alpine(repository)
    meeting = _meeting(repository)
    reservation = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )

    released = service.cancel_meeting(meeting_id=meeting.meeting_id, actor_id="ada")

    assert released is not None
    assert released.reservation_id == reservation.reservation_id
    assert released.status == "cancelled"
    stored = repository.get_meeting(meeting.meeting_id)
    assert stored is not None and stored.status == "cancelled"
    grace_titles = [event.title for event in repository.list_notifications("grace")]
    assert grace_titles == ["Meeting Cancelled"]
    assert service.cancel_meeting(meeting_id=meeting.meeting_id, actor_id="ada") is None

    with pytest.raises(BookingValidationError):
        service.book_meeting(
            meeting_id=meeting.meeting_id,
            room_id=room.room_id,
            date="2024-03-01",
            start_time="11:00",
            booked_by="ada",
        )


def test_duration_change_clears_venue(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)
    meeting = _meeting(repository, duration=30)
    reservation = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )

    assert service.change_meeting_duration(
        meeting_id=meeting.meeting_id, proposed_duration=30, actor_id="ada"
    ) is None
    released = service.change_meeting_duration(
        meeting_id=meeting.meeting_id, proposed_duration=90, actor_id="ada"
    )

    assert released is not None
    assert released.reservation_id == reservation.reservation_id
    assert released.status == "cancelled"
    stored = repository.get_meeting(meeting.meeting_id)
    assert stored is not None
    assert stored.proposed_duration == 90
    assert stored.venue_booking_id is None
    assert repository.get_active_reservation_for_meeting(meeting.meeting_id) is None


def test_private_reservation_requires_topic(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)

    with pytest.raises(BookingValidationError):
        service.create_private_reservation(
            room_id=room.room_id,
            date="2024-03-01",
            start_time="13:00",
            end_time="14:00",
            topic="   ",
            booked_by="admin",
        )

    reservation = service.create_private_reservation(
        room_id=room.room_id,
        date="2024-03-01",
        start_time="13:00",
        end_time="14:00",
        topic="Board interviews",
        booked_by="admin",
    )
    assert reservation.booking_type == "private"
    assert reservation.meeting_request_id is None
    assert reservation.topic == "Board interviews"


def test_private_reservation_end_must_follow_start(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)
    with pytest.raises(BookingValidationError):
        service.create_private_reservation(
            room_id=room.room_id,
            date="2024-03-01",
            start_time="14:00",
            end_time="14:00",
            topic="Hold",
            booked_by="admin",
        )


def test_scheduling_request_excludes_existing_booking(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)
    meeting = _meeting(repository, duration=60)
    reservation = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )

    request = service.scheduling_request_for(meeting.meeting_id, "2024-03-01", "10:00")

    assert request.duration_minutes == 60
    assert request.attendee_count == 4
    assert request.exclude_reservation_id == reservation.reservation_id


def test_stale_reservation_is_not_revived_by_a_move(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    _seed_people(repository)
    room = _alpine(repository)
    meeting = _meeting(repository, duration=60)
    stale = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )
    service.cancel_meeting(meeting_id=meeting.meeting_id, actor_id="ada")
    notifications_before = repository.count_notifications()

    with pytest.raises(SlotUnavailableError):
        service.book(
            room,
            meeting,
            datetime(2024, 3, 1, 11, 0),
            datetime(2024, 3, 1, 12, 0),
            "ada",
            existing_reservation=stale,
        )

    stored = repository.get_reservation(stale.reservation_id)
    assert stored is not None
    assert stored.status == "cancelled"
    assert stored.start_time == datetime(2024, 3, 1, 9, 0)
    assert repository.list_reservations(status="active") == []
    assert repository.count_notifications() == notifications_before


def test_admin_cancel_only_revokes_private_reservations(tmp_path: Path) -> None:
    service, repository = _build_service(tmp_path)
    room = _alpine(repository)
    meeting = _meeting(repository)
    reservation = service.book_meeting(
        meeting_id=meeting.meeting_id,
        room_id=room.room_id,
        date="2024-03-01",
        start_time="09:00",
        booked_by="ada",
    )

    with pytest.raises(BookingValidationError):
        service.cancel_reservation(reservation.reservation_id)

    stored = repository.get_reservation(reservation.reservation_id)
    assert stored is not None and stored.status == "active"
    linked = repository.get_meeting(meeting.meeting_id)
    assert linked is not None and linked.venue_booking_id == reservation.reservation_id
