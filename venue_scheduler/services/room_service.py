"""Room inventory administration."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional

from venue_scheduler.domain.constraints import validate_room_fields
from venue_scheduler.domain.models import Room
from venue_scheduler.repository.data_repository import DataRepository
from venue_scheduler.services.booking_service import RoomNotFoundError
from venue_scheduler.utils.config import Settings, get_settings
from venue_scheduler.utils.logger import get_logger


logger = get_logger(__name__)


class RoomValidationError(Exception):
    """Raised when room attributes break inventory rules."""


_EDITABLE_FIELDS = {
    "name",
    "capacity",
    "floor",
    "room_type",
    "equipment",
    "is_active",
    "description",
}


def _validate(room: Room) -> None:
    try:
        validate_room_fields(
            name=room.name,
            capacity=room.capacity,
            room_type=room.room_type,
            equipment=room.equipment,
        )
    except ValueError as exc:
        raise RoomValidationError(str(exc)) from exc


class RoomService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def list_rooms(self, active_only: bool = False) -> list[Room]:
        return self._repository.list_rooms(active_only=active_only)

    def create_room(
        self,
        *,
        name: str,
        capacity: int,
        floor: int,
        room_type: str,
        equipment: tuple[str, ...] = (),
        is_active: bool = True,
        description: str = "",
    ) -> Room:
        draft = Room(
            room_id=0,
            name=name.strip(),
            capacity=capacity,
            floor=floor,
            room_type=room_type,
            equipment=tuple(dict.fromkeys(equipment)),
            is_active=is_active,
            description=description,
        )
        _validate(draft)
        room = self._repository.create_room(
            name=draft.name,
            capacity=draft.capacity,
            floor=draft.floor,
            room_type=draft.room_type,
            equipment=draft.equipment,
            is_active=draft.is_active,
            description=draft.description,
        )
        logger.info("Room created | room_id=%s | name=%s", room.room_id, room.name)
        return room

    def update_room(self, room_id: int, **changes: Any) -> Room:
        """Apply a partial update; None values are ignored."""
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise RoomValidationError(f"unknown room fields: {', '.join(sorted(unknown))}")
        room = self._repository.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"room_id {room_id} not found")

        applied = {key: value for key, value in changes.items() if value is not None}
        if "equipment" in applied:
            applied["equipment"] = tuple(dict.fromkeys(applied["equipment"]))
        if "name" in applied:
            applied["name"] = applied["name"].strip()
        updated = replace(room, **applied)
        _validate(updated)
        self._repository.update_room(updated)
        logger.info("Room updated | room_id=%s | fields=%s", room_id, sorted(applied))
        return updated

    def set_active(self, room_id: int, is_active: bool) -> Room:
        return self.update_room(room_id, is_active=is_active)
