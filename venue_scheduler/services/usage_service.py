"""Room usage summaries for the room detail view."""

from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd

from venue_scheduler.domain.models import Reservation, RoomUsage
from venue_scheduler.repository.data_repository import DataRepository
from venue_scheduler.services.availability_service import SchedulingValidationError
from venue_scheduler.services.booking_service import RoomNotFoundError
from venue_scheduler.utils.config import Settings, get_settings


def _reservation_frame(reservations: Sequence[Reservation]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [
            {
                "reservation_id": reservation.reservation_id,
                "room_id": reservation.room_id,
                "start_time": reservation.start_time,
                "end_time": reservation.end_time,
                "status": reservation.status,
            }
            for reservation in reservations
        ],
        columns=["reservation_id", "room_id", "start_time", "end_time", "status"],
    )
    if frame.empty:
        return frame
    frame["start_time"] = pd.to_datetime(frame["start_time"])
    frame["end_time"] = pd.to_datetime(frame["end_time"])
    frame["hours"] = (frame["end_time"] - frame["start_time"]).dt.total_seconds() / 3600.0
    frame["date"] = frame["start_time"].dt.strftime("%Y-%m-%d")
    return frame


def summarize_room_usage(
    reservations: Sequence[Reservation],
    room_id: int,
    on_date: Optional[str] = None,
) -> RoomUsage:
    """Count active reservations and booked hours; list the chosen day's bookings."""
    frame = _reservation_frame(reservations)
    if frame.empty:
        return RoomUsage(room_id=room_id, total_bookings=0, total_hours=0.0)

    frame = frame[(frame["room_id"] == room_id) & (frame["status"] == "active")]
    if frame.empty:
        return RoomUsage(room_id=room_id, total_bookings=0, total_hours=0.0)

    day_reservations: list[Reservation] = []
    if on_date is not None:
        by_id = {reservation.reservation_id: reservation for reservation in reservations}
        day_rows = frame[frame["date"] == on_date].sort_values(by=["start_time", "reservation_id"])
        day_reservations = [by_id[int(value)] for value in day_rows["reservation_id"]]

    return RoomUsage(
        room_id=room_id,
        total_bookings=int(len(frame)),
        total_hours=round(float(frame["hours"].sum()), 1),
        reservations_on_date=day_reservations,
    )


def daily_booked_hours(reservations: Sequence[Reservation]) -> pd.DataFrame:
    """Pivot of active booked hours with one row per date and one column per room id."""
    frame = _reservation_frame(reservations)
    if frame.empty:
        return pd.DataFrame()
    frame = frame[frame["status"] == "active"]
    if frame.empty:
        return pd.DataFrame()
    return frame.pivot_table(
        index="date",
        columns="room_id",
        values="hours",
        aggfunc="sum",
        fill_value=0.0,
    )


class UsageService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def room_usage(self, room_id: int, on_date: Optional[str] = None) -> RoomUsage:
        if self._repository.get_room(room_id) is None:
            raise RoomNotFoundError(f"room_id {room_id} not found")
        if on_date is not None:
            try:
                pd.to_datetime(on_date, format="%Y-%m-%d")
            except ValueError as exc:
                raise SchedulingValidationError("date must follow YYYY-MM-DD format") from exc
        return summarize_room_usage(
            self._repository.list_reservations(room_id=room_id),
            room_id,
            on_date,
        )

    def daily_hours(self) -> pd.DataFrame:
        return daily_booked_hours(self._repository.list_reservations(status="active"))
