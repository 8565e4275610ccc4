"""Domain models for rooms, reservations and meeting scheduling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from venue_scheduler.domain.intervals import Interval


RESERVATION_ACTIVE = "active"
RESERVATION_CANCELLED = "cancelled"

BOOKING_TYPE_MEETING = "meeting"
BOOKING_TYPE_PRIVATE = "private"

MEETING_CANCELLED = "cancelled"

ROOM_TYPES = ("small", "large")
EQUIPMENT_TAGS = ("Wifi", "Projector", "Monitor", "Coffee", "Whiteboard")


@dataclass(frozen=True)
class Room:
    room_id: int
    name: str
    capacity: int
    floor: int
    room_type: str
    equipment: tuple[str, ...] = ()
    is_active: bool = True
    description: str = ""


@dataclass(frozen=True)
class Reservation:
    """A room/time assignment. Cancellation flips status; rows are never deleted."""

    reservation_id: int
    room_id: int
    start_time: datetime
    end_time: datetime
    status: str = RESERVATION_ACTIVE
    booking_type: str = BOOKING_TYPE_MEETING
    booked_by: Optional[str] = None
    meeting_request_id: Optional[int] = None
    topic: Optional[str] = None
    room_name: str = ""
    room_type: str = ""
    capacity: int = 0
    floor_level: int = 0
    equipment: tuple[str, ...] = ()

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_time, end=self.end_time)

    @property
    def is_active(self) -> bool:
        return self.status == RESERVATION_ACTIVE

    @property
    def duration_minutes(self) -> int:
        return self.interval.duration_minutes


@dataclass(frozen=True)
class Meeting:
    meeting_id: int
    requester_id: str
    recipient_ids: tuple[str, ...]
    proposed_duration: int
    proposed_topic: str
    status: str = "accepted"
    venue_booking_id: Optional[int] = None

    @property
    def attendee_count(self) -> int:
        return 1 + len(self.recipient_ids)

    @property
    def participant_ids(self) -> list[str]:
        return [self.requester_id, *self.recipient_ids]


@dataclass(frozen=True)
class UserProfile:
    user_id: str
    full_name: str
    notify_booking_confirmed: bool = True
    notify_request_status_update: bool = True


@dataclass(frozen=True)
class SchedulingRequest:
    """Ephemeral input of one booking attempt; never persisted."""

    date: str
    start_time: str
    duration_minutes: int
    attendee_count: int = 0
    exclude_reservation_id: Optional[int] = None


@dataclass(frozen=True)
class Suggestion:
    room: Room
    date: str
    time: str


@dataclass(frozen=True)
class SuggestionFailure:
    error: str


SuggestionResult = Union[Suggestion, SuggestionFailure]


@dataclass(frozen=True)
class NotificationEvent:
    user_id: str
    notification_type: str
    title: str
    body: str
    link: str
    related_entity_id: Optional[int] = None


@dataclass(frozen=True)
class RoomUsage:
    room_id: int
    total_bookings: int
    total_hours: float
    reservations_on_date: list[Reservation] = field(default_factory=list)
