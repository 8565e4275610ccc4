"""Per-room, per-slot schedule grid for one day."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from venue_scheduler.domain.intervals import (
    add_minutes,
    combine,
    format_date,
    format_time,
    overlaps,
    window,
)
from venue_scheduler.domain.models import (
    BOOKING_TYPE_PRIVATE,
    Meeting,
    Reservation,
    Room,
)
from venue_scheduler.repository.data_repository import DataRepository
from venue_scheduler.services.availability_service import (
    SchedulingValidationError,
    is_available,
)
from venue_scheduler.services.booking_service import (
    MeetingNotFoundError,
    ReservationNotFoundError,
)
from venue_scheduler.utils.config import Settings, get_settings


SLOT_BOOKED = "booked"
SLOT_EDITING = "editing"
SLOT_AVAILABLE = "available"
SLOT_UNAVAILABLE = "unavailable"
SLOT_NOT_APPLICABLE = "not_applicable"


@dataclass(frozen=True)
class ScheduleCell:
    time: str
    state: str
    reservation_id: Optional[int] = None
    label: str = ""
    span: str = ""
    topic: Optional[str] = None


@dataclass(frozen=True)
class ScheduleRow:
    room: Room
    cells: list[ScheduleCell]


@dataclass(frozen=True)
class GridContext:
    """What the viewer is trying to place; no duration means browse-only."""

    duration_minutes: Optional[int] = None
    attendee_count: int = 0
    editing_reservation: Optional[Reservation] = None
    viewer_id: Optional[str] = None


def build_time_slots(day_start: str, day_end: str, slot_minutes: int) -> list[str]:
    """Slot labels from day_start through day_end inclusive."""
    if slot_minutes <= 0:
        raise SchedulingValidationError("slot_minutes must be > 0")
    try:
        current = combine("2000-01-01", day_start)
        last = combine("2000-01-01", day_end)
    except ValueError as exc:
        raise SchedulingValidationError("grid bounds must follow HH:mm") from exc
    slots: list[str] = []
    while current <= last:
        slots.append(format_time(current))
        current = add_minutes(current, slot_minutes)
    return slots


def slots_needed(duration_minutes: int, slot_minutes: int) -> int:
    return math.ceil(duration_minutes / slot_minutes)


def _slot_booking(
    room_id: int,
    date: str,
    time_slot: str,
    slot_minutes: int,
    reservations: Sequence[Reservation],
) -> Optional[Reservation]:
    slot = window(date, time_slot, slot_minutes)
    for reservation in reservations:
        if (
            reservation.room_id == room_id
            and reservation.is_active
            and overlaps(slot, reservation.interval)
        ):
            return reservation
    return None


def can_book_slot(
    room: Room,
    date: str,
    time_slot: str,
    context: GridContext,
    reservations: Sequence[Reservation],
    slot_minutes: int = 30,
) -> bool:
    """True when every slot covered by the requested duration is free."""
    if not room.is_active or context.duration_minutes is None:
        return False
    if context.attendee_count and room.capacity < context.attendee_count:
        return False

    exclude_id = (
        context.editing_reservation.reservation_id if context.editing_reservation else None
    )
    start = combine(date, time_slot)
    for index in range(slots_needed(context.duration_minutes, slot_minutes)):
        check = add_minutes(start, index * slot_minutes)
        if not is_available(
            room.room_id,
            format_date(check),
            format_time(check),
            slot_minutes,
            reservations,
            exclude_id,
        ):
            return False
    return True


def _participant_names(
    meeting: Optional[Meeting],
    viewer_id: Optional[str],
    user_names: Mapping[str, str],
) -> str:
    # Names are only shown to people who are in the meeting themselves.
    if meeting is None or viewer_id is None or viewer_id not in meeting.participant_ids:
        return ""
    names = [
        user_names.get(user_id, "")
        for user_id in meeting.participant_ids
        if user_id != viewer_id
    ]
    return ", ".join(name for name in names if name)


def booking_label(
    reservation: Reservation,
    context: GridContext,
    meetings: Mapping[int, Meeting],
    user_names: Mapping[str, str],
) -> str:
    editing = context.editing_reservation
    if editing is not None and reservation.reservation_id == editing.reservation_id:
        return "Your Booking"
    booked_by_viewer = context.viewer_id is not None and reservation.booked_by == context.viewer_id
    if reservation.booking_type == BOOKING_TYPE_PRIVATE:
        return "Private (You)" if booked_by_viewer else "Private"
    meeting = (
        meetings.get(reservation.meeting_request_id)
        if reservation.meeting_request_id is not None
        else None
    )
    participants = _participant_names(meeting, context.viewer_id, user_names)
    if participants:
        return f"Booked ({participants})"
    if booked_by_viewer:
        return "Booked (You)"
    return "Booked"


def build_schedule_grid(
    rooms: Sequence[Room],
    reservations: Sequence[Reservation],
    date: str,
    time_slots: Sequence[str],
    context: GridContext = GridContext(),
    meetings: Optional[Mapping[int, Meeting]] = None,
    user_names: Optional[Mapping[str, str]] = None,
    slot_minutes: int = 30,
) -> list[ScheduleRow]:
    meetings = meetings or {}
    user_names = user_names or {}
    rows: list[ScheduleRow] = []
    for room in rooms:
        cells: list[ScheduleCell] = []
        for time_slot in time_slots:
            booking = _slot_booking(room.room_id, date, time_slot, slot_minutes, reservations)
            if booking is not None:
                editing = context.editing_reservation
                is_editing = (
                    editing is not None and booking.reservation_id == editing.reservation_id
                )
                cells.append(
                    ScheduleCell(
                        time=time_slot,
                        state=SLOT_EDITING if is_editing else SLOT_BOOKED,
                        reservation_id=booking.reservation_id,
                        label=booking_label(booking, context, meetings, user_names),
                        span=f"{format_time(booking.start_time)} - {format_time(booking.end_time)}",
                        topic=booking.topic,
                    )
                )
                continue

            if context.duration_minutes is None:
                state = SLOT_NOT_APPLICABLE if room.is_active else SLOT_UNAVAILABLE
            elif can_book_slot(room, date, time_slot, context, reservations, slot_minutes):
                state = SLOT_AVAILABLE
            else:
                state = SLOT_UNAVAILABLE
            cells.append(ScheduleCell(time=time_slot, state=state))
        rows.append(ScheduleRow(room=room, cells=cells))
    return rows


class ScheduleService:
    """Assembles the grid inputs from the store for one day."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def time_slots(self) -> list[str]:
        return build_time_slots(
            self._settings.grid_day_start,
            self._settings.grid_day_end,
            self._settings.grid_slot_minutes,
        )

    def get_schedule(
        self,
        *,
        date: str,
        meeting_id: Optional[int] = None,
        editing_reservation_id: Optional[int] = None,
        viewer_id: Optional[str] = None,
    ) -> list[ScheduleRow]:
        try:
            combine(date, "00:00")
        except ValueError as exc:
            raise SchedulingValidationError("date must follow YYYY-MM-DD format") from exc

        meetings = {meeting.meeting_id: meeting for meeting in self._repository.list_meetings()}
        editing: Optional[Reservation] = None
        duration: Optional[int] = None
        attendee_count = 0

        if editing_reservation_id is not None:
            editing = self._repository.get_reservation(editing_reservation_id)
            if editing is None:
                raise ReservationNotFoundError(
                    f"reservation_id {editing_reservation_id} not found"
                )
            duration = editing.duration_minutes
            linked = meetings.get(editing.meeting_request_id) if editing.meeting_request_id else None
            if linked is not None:
                attendee_count = linked.attendee_count

        if meeting_id is not None:
            meeting = meetings.get(meeting_id)
            if meeting is None:
                raise MeetingNotFoundError(f"meeting_id {meeting_id} not found")
            attendee_count = meeting.attendee_count
            if duration is None:
                duration = meeting.proposed_duration
            if editing is None:
                # The meeting's current booking must not block its own move.
                editing = self._repository.get_active_reservation_for_meeting(meeting_id)

        context = GridContext(
            duration_minutes=duration,
            attendee_count=attendee_count,
            editing_reservation=editing,
            viewer_id=viewer_id,
        )
        user_names = {user.user_id: user.full_name for user in self._repository.list_users()}
        return build_schedule_grid(
            self._repository.list_rooms(),
            self._repository.list_reservations(status="active"),
            date,
            self.time_slots(),
            context=context,
            meetings=meetings,
            user_names=user_names,
            slot_minutes=self._settings.grid_slot_minutes,
        )
