"""Tests for room inventory administration."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from venue_scheduler.repository.data_repository import DataRepository
from venue_scheduler.services.booking_service import RoomNotFoundError
from venue_scheduler.services.room_service import RoomService, RoomValidationError
from venue_scheduler.utils.config import get_settings


def _build_service(tmp_path: Path) -> RoomService:
    settings = replace(get_settings(), database_path=tmp_path / "rooms_test.db", seed_demo_data=False)
    repository = DataRepository(settings)
    repository.initialize_database()
    return RoomService(repository=repository, settings=settings)


def test_create_room_normalizes_fields(tmp_path: Path) -> None:
    service = _build_service(tmp_path)
    room = service.create_room(
        name="  Birch ",
        capacity=4,
        floor=1,
        room_type="small",
        equipment=("Wifi", "Wifi", "Monitor"),
    )
    assert room.name == "Birch"
    assert room.equipment == ("Wifi", "Monitor")
    assert service.list_rooms() == [room]


def test_create_room_rejects_bad_fields(tmp_path: Path) -> None:
    service = _build_service(tmp_path)
    with pytest.raises(RoomValidationError):
        service.create_room(name="Attic", capacity=0, floor=1, room_type="small")
    with pytest.raises(RoomValidationError):
        service.create_room(name="Attic", capacity=4, floor=1, room_type="huge")
    assert service.list_rooms() == []


def test_partial_update_keeps_other_fields(tmp_path: Path) -> None:
    service = _build_service(tmp_path)
    room = service.create_room(name="Cedar", capacity=6, floor=2, room_type="small")

    updated = service.update_room(room.room_id, capacity=8, description=None)

    assert updated.capacity == 8
    assert updated.name == "Cedar"
    assert service.list_rooms() == [updated]


def test_deactivated_room_leaves_active_listing(tmp_path: Path) -> None:
    service = _build_service(tmp_path)
    room = service.create_room(name="Elm", capacity=2, floor=3, room_type="small")

    service.set_active(room.room_id, False)

    assert service.list_rooms(active_only=True) == []
    assert [item.room_id for item in service.list_rooms()] == [room.room_id]


def test_update_rejects_unknown_fields_and_rooms(tmp_path: Path) -> None:
    service = _build_service(tmp_path)
    room = service.create_room(name="Delta Hall", capacity=24, floor=2, room_type="large")
    with pytest.raises(RoomValidationError):
        service.update_room(room.room_id, colour="blue")
    with pytest.raises(RoomNotFoundError):
        service.update_room(999, capacity=4)


def test_basement_floor_is_accepted(tmp_path: Path) -> None:
    service = _build_service(tmp_path)
    room = service.create_room(name="Vault", capacity=6, floor=-1, room_type="small")
    assert room.floor == -1

    moved = service.update_room(room.room_id, floor=-2)
    assert moved.floor == -2
    assert service.list_rooms() == [moved]
