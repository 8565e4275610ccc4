"""Reservation writes: meeting bookings, private holds and cancellations."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from venue_scheduler.domain.intervals import combine
from venue_scheduler.domain.models import (
    BOOKING_TYPE_PRIVATE,
    MEETING_CANCELLED,
    RESERVATION_CANCELLED,
    Meeting,
    NotificationEvent,
    Reservation,
    Room,
    SchedulingRequest,
)
from venue_scheduler.repository.data_repository import DataRepository
from venue_scheduler.services.availability_service import (
    SchedulingValidationError,
    is_available,
    requested_window,
)
from venue_scheduler.utils.config import Settings, get_settings
from venue_scheduler.utils.logger import get_logger


logger = get_logger(__name__)

VENUES_LINK = "/venues"
MEETINGS_LINK = "/meetings"


class BookingError(Exception):
    """Base exception for reservation write failures."""


class BookingValidationError(BookingError):
    """Raised when a booking request is rejected before touching the store."""


class BookingConflictError(BookingError):
    """Raised when the requested room/time already holds an active reservation."""


class RoomNotFoundError(BookingError):
    pass


class MeetingNotFoundError(BookingError):
    pass


class ReservationNotFoundError(BookingError):
    pass


class BookingService:
    """Single commit path for every reservation mutation."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    # --- lookups ---

    def _require_room(self, room_id: int) -> Room:
        room = self._repository.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"room_id {room_id} not found")
        return room

    def _require_meeting(self, meeting_id: int) -> Meeting:
        meeting = self._repository.get_meeting(meeting_id)
        if meeting is None:
            raise MeetingNotFoundError(f"meeting_id {meeting_id} not found")
        return meeting

    def _require_reservation(self, reservation_id: int) -> Reservation:
        reservation = self._repository.get_reservation(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(f"reservation_id {reservation_id} not found")
        return reservation

    def scheduling_request_for(self, meeting_id: int, date: str, start_time: str) -> SchedulingRequest:
        """Derive attendee count, duration and the edit exclusion from a meeting."""
        meeting = self._require_meeting(meeting_id)
        existing = self._repository.get_active_reservation_for_meeting(meeting_id)
        return SchedulingRequest(
            date=date,
            start_time=start_time,
            duration_minutes=meeting.proposed_duration,
            attendee_count=meeting.attendee_count,
            exclude_reservation_id=existing.reservation_id if existing else None,
        )

    # --- writes ---

    def book(
        self,
        room: Room,
        meeting: Meeting,
        start_time: datetime,
        end_time: datetime,
        booked_by: str,
        existing_reservation: Optional[Reservation] = None,
    ) -> Reservation:
        """Commit a meeting reservation and tell the participants.

        An existing reservation is moved in place; otherwise a new one is
        created together with the meeting's back-reference. Store failures
        propagate and leave the meeting untouched.
        """
        if end_time <= start_time:
            raise BookingValidationError("end_time must be after start_time")

        if existing_reservation is not None:
            reservation = self._repository.update_reservation_slot(
                reservation=existing_reservation,
                room=room,
                start_time=start_time,
                end_time=end_time,
                booked_by=booked_by,
            )
        else:
            reservation = self._repository.create_reservation(
                room=room,
                start_time=start_time,
                end_time=end_time,
                booked_by=booked_by,
                meeting_request_id=meeting.meeting_id,
            )
        logger.info(
            "Booking committed | reservation_id=%s | meeting_id=%s | room_id=%s | start=%s | end=%s | updated=%s",
            reservation.reservation_id,
            meeting.meeting_id,
            room.room_id,
            start_time.isoformat(),
            end_time.isoformat(),
            existing_reservation is not None,
        )

        updated = existing_reservation is not None
        self._notify_participants(
            meeting=meeting,
            actor_id=booked_by,
            include_actor=updated,
            preference="booking_confirmed",
            notification_type="booking_confirmed",
            title="Meeting Venue Updated" if updated else "Venue Confirmed",
            body=(
                f'{room.name} has been {"updated" if updated else "booked"} '
                f'for meeting: "{meeting.proposed_topic}".'
            ),
            link=VENUES_LINK,
            related_entity_id=reservation.reservation_id,
        )
        return reservation

    def book_meeting(
        self,
        *,
        meeting_id: int,
        room_id: int,
        date: str,
        start_time: str,
        booked_by: str,
    ) -> Reservation:
        """Check the chosen room/time against a fresh snapshot, then commit it."""
        meeting = self._require_meeting(meeting_id)
        if meeting.status == MEETING_CANCELLED:
            raise BookingValidationError(f"meeting_id {meeting_id} is cancelled")
        room = self._require_room(room_id)
        if not room.is_active:
            raise BookingValidationError(f"{room.name} is inactive")
        if room.capacity < meeting.attendee_count:
            raise BookingValidationError(
                f"{room.name} seats {room.capacity}; meeting has {meeting.attendee_count} attendees"
            )

        try:
            requested = requested_window(date, start_time, meeting.proposed_duration)
        except SchedulingValidationError as exc:
            raise BookingValidationError(str(exc)) from exc

        existing = self._repository.get_active_reservation_for_meeting(meeting_id)
        exclude_id = existing.reservation_id if existing else None
        snapshot = self._repository.list_reservations(room_id=room_id, status="active")
        if not is_available(
            room_id,
            date,
            start_time,
            meeting.proposed_duration,
            snapshot,
            exclude_id,
        ):
            raise BookingConflictError(f"{room.name} is not available at {date} {start_time}")

        return self.book(
            room,
            meeting,
            requested.start,
            requested.end,
            booked_by,
            existing_reservation=existing,
        )

    def create_private_reservation(
        self,
        *,
        room_id: int,
        date: str,
        start_time: str,
        end_time: str,
        topic: str,
        booked_by: str,
    ) -> Reservation:
        """Admin-only hold that is not tied to a meeting."""
        if not topic or not topic.strip():
            raise BookingValidationError("topic is required for a private reservation")
        try:
            start = combine(date, start_time)
            end = combine(date, end_time)
        except ValueError as exc:
            raise BookingValidationError(
                f"invalid date/time for {date}; expected YYYY-MM-DD and HH:mm"
            ) from exc
        if end <= start:
            raise BookingValidationError("end_time must be after start_time")

        room = self._require_room(room_id)
        duration_minutes = int((end - start).total_seconds() // 60)
        snapshot = self._repository.list_reservations(room_id=room_id, status="active")
        if not is_available(room_id, date, start_time, duration_minutes, snapshot):
            raise BookingConflictError(f"{room.name} is not available at {date} {start_time}")

        reservation = self._repository.create_reservation(
            room=room,
            start_time=start,
            end_time=end,
            booked_by=booked_by,
            booking_type=BOOKING_TYPE_PRIVATE,
            topic=topic.strip(),
        )
        logger.info(
            "Private reservation committed | reservation_id=%s | room_id=%s | start=%s | end=%s",
            reservation.reservation_id,
            room_id,
            start.isoformat(),
            end.isoformat(),
        )
        return reservation

    def cancel(self, reservation: Reservation) -> Reservation:
        """Flag a reservation cancelled; cancelling twice changes nothing."""
        if not reservation.is_active:
            logger.info(
                "Reservation already cancelled | reservation_id=%s",
                reservation.reservation_id,
            )
            return reservation
        self._repository.set_reservation_status(reservation.reservation_id, RESERVATION_CANCELLED)
        logger.info("Reservation cancelled | reservation_id=%s", reservation.reservation_id)
        return self._require_reservation(reservation.reservation_id)

    def cancel_reservation(self, reservation_id: int) -> Reservation:
        """Admin revocation of a private hold; meeting venues go through cancel_meeting."""
        reservation = self._require_reservation(reservation_id)
        if reservation.booking_type != BOOKING_TYPE_PRIVATE:
            raise BookingValidationError(
                f"reservation_id {reservation_id} belongs to a meeting; cancel the meeting instead"
            )
        return self.cancel(reservation)

    def cancel_meeting(self, *, meeting_id: int, actor_id: str) -> Optional[Reservation]:
        """Cancel a meeting and release its venue. Returns the released reservation, if any."""
        meeting = self._require_meeting(meeting_id)
        if meeting.status == MEETING_CANCELLED:
            return None
        existing = self._repository.get_active_reservation_for_meeting(meeting_id)
        self._repository.cancel_meeting(
            meeting_id,
            existing.reservation_id if existing else None,
        )
        logger.info(
            "Meeting cancelled | meeting_id=%s | released_reservation_id=%s",
            meeting_id,
            existing.reservation_id if existing else None,
        )
        self._notify_participants(
            meeting=meeting,
            actor_id=actor_id,
            include_actor=False,
            preference="request_status_update",
            notification_type="request_status_update",
            title="Meeting Cancelled",
            body=f'Your meeting "{meeting.proposed_topic}" has been cancelled.',
            link=MEETINGS_LINK,
            related_entity_id=meeting_id,
        )
        if existing is None:
            return None
        return self._repository.get_reservation(existing.reservation_id)

    def change_meeting_duration(
        self,
        *,
        meeting_id: int,
        proposed_duration: int,
        actor_id: str,
    ) -> Optional[Reservation]:
        """Store a new duration; a real change releases the venue for re-booking."""
        if proposed_duration <= 0:
            raise BookingValidationError("proposed_duration must be > 0")
        meeting = self._require_meeting(meeting_id)
        if meeting.proposed_duration == proposed_duration:
            return None

        existing = self._repository.get_active_reservation_for_meeting(meeting_id)
        self._repository.change_meeting_duration(
            meeting_id,
            proposed_duration,
            existing.reservation_id if existing else None,
        )
        logger.info(
            "Meeting duration changed | meeting_id=%s | old=%s | new=%s | venue_cleared=%s",
            meeting_id,
            meeting.proposed_duration,
            proposed_duration,
            existing is not None,
        )
        venue_note = " The venue has been cleared and needs to be re-booked." if existing else ""
        self._notify_participants(
            meeting=meeting,
            actor_id=actor_id,
            include_actor=False,
            preference="request_status_update",
            notification_type="meeting_updated",
            title="Meeting Details Updated",
            body=f'The details for your meeting "{meeting.proposed_topic}" have changed.{venue_note}',
            link=MEETINGS_LINK,
            related_entity_id=meeting_id,
        )
        if existing is None:
            return None
        return self._repository.get_reservation(existing.reservation_id)

    # --- notifications ---

    def _notify_participants(
        self,
        *,
        meeting: Meeting,
        actor_id: str,
        include_actor: bool,
        preference: str,
        notification_type: str,
        title: str,
        body: str,
        link: str,
        related_entity_id: Optional[int],
    ) -> int:
        """Fire-and-forget; a failed notification never undoes the committed write."""
        recipients = [
            user_id
            for user_id in dict.fromkeys(meeting.participant_ids)
            if include_actor or user_id != actor_id
        ]
        try:
            profiles = self._repository.get_users(recipients)
        except Exception:
            logger.warning(
                "Notification preferences unavailable | meeting_id=%s",
                meeting.meeting_id,
                exc_info=True,
            )
            return 0

        sent = 0
        for user_id in recipients:
            profile = profiles.get(user_id)
            if profile is None:
                continue
            if preference == "booking_confirmed" and not profile.notify_booking_confirmed:
                continue
            if preference == "request_status_update" and not profile.notify_request_status_update:
                continue
            try:
                self._repository.create_notification(
                    NotificationEvent(
                        user_id=user_id,
                        notification_type=notification_type,
                        title=title,
                        body=body,
                        link=link,
                        related_entity_id=related_entity_id,
                    )
                )
                sent += 1
            except Exception:
                logger.warning(
                    "Notification dispatch failed | user_id=%s | type=%s",
                    user_id,
                    notification_type,
                    exc_info=True,
                )
        return sent
