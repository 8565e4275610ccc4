"""Controller layer for room inventory, usage and the schedule grid."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from venue_scheduler.controllers.dependencies import (
    get_room_service,
    get_schedule_service,
    get_usage_service,
    require_admin,
)
from venue_scheduler.controllers.booking_controller import ReservationResponse
from venue_scheduler.domain.models import Room
from venue_scheduler.services.availability_service import SchedulingValidationError
from venue_scheduler.services.booking_service import (
    MeetingNotFoundError,
    ReservationNotFoundError,
    RoomNotFoundError,
)
from venue_scheduler.services.room_service import RoomService, RoomValidationError
from venue_scheduler.services.schedule_service import ScheduleService
from venue_scheduler.services.usage_service import UsageService
from venue_scheduler.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["rooms"])


class RoomResponse(BaseModel):
    room_id: int = Field(gt=0)
    name: str
    capacity: int = Field(ge=1)
    floor: int
    room_type: str
    equipment: list[str]
    is_active: bool
    description: str = ""

    @classmethod
    def from_domain(cls, room: Room) -> "RoomResponse":
        return cls(
            room_id=room.room_id,
            name=room.name,
            capacity=room.capacity,
            floor=room.floor,
            room_type=room.room_type,
            equipment=list(room.equipment),
            is_active=room.is_active,
            description=room.description,
        )


class RoomCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    capacity: int = Field(ge=1)
    floor: int = 1
    room_type: str = "small"
    equipment: list[str] = Field(default_factory=list)
    is_active: bool = True
    description: str = ""


class RoomUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    capacity: Optional[int] = Field(default=None, ge=1)
    floor: Optional[int] = None
    room_type: Optional[str] = None
    equipment: Optional[list[str]] = None
    is_active: Optional[bool] = None
    description: Optional[str] = None


class RoomUsageResponse(BaseModel):
    room_id: int
    total_bookings: int = Field(ge=0)
    total_hours: float = Field(ge=0.0)
    reservations: list[ReservationResponse]


class DailyHoursRow(BaseModel):
    date: str
    hours_by_room: dict[int, float]


class ScheduleCellResponse(BaseModel):
    time: str
    state: str
    reservation_id: int | None = None
    label: str = ""
    span: str = ""
    topic: str | None = None


class ScheduleRowResponse(BaseModel):
    room: RoomResponse
    cells: list[ScheduleCellResponse]


class ScheduleResponse(BaseModel):
    date: str
    time_slots: list[str]
    rows: list[ScheduleRowResponse]


@router.get("/rooms", response_model=list[RoomResponse], status_code=status.HTTP_200_OK)
async def list_rooms(
    active_only: bool = False,
    service: RoomService = Depends(get_room_service),
) -> list[RoomResponse]:
    return [RoomResponse.from_domain(room) for room in service.list_rooms(active_only=active_only)]


@router.post(
    "/rooms",
    response_model=RoomResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_room(
    payload: RoomCreateRequest,
    service: RoomService = Depends(get_room_service),
) -> RoomResponse:
    try:
        room = service.create_room(
            name=payload.name,
            capacity=payload.capacity,
            floor=payload.floor,
            room_type=payload.room_type,
            equipment=tuple(payload.equipment),
            is_active=payload.is_active,
            description=payload.description,
        )
        return RoomResponse.from_domain(room)
    except RoomValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.patch(
    "/rooms/{room_id}",
    response_model=RoomResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def update_room(
    room_id: int,
    payload: RoomUpdateRequest,
    service: RoomService = Depends(get_room_service),
) -> RoomResponse:
    try:
        room = service.update_room(room_id, **payload.model_dump(exclude_none=True))
        return RoomResponse.from_domain(room)
    except RoomValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except RoomNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get(
    "/rooms/{room_id}/usage",
    response_model=RoomUsageResponse,
    status_code=status.HTTP_200_OK,
)
async def room_usage(
    room_id: int,
    on_date: Optional[date] = Query(default=None, alias="date"),
    service: UsageService = Depends(get_usage_service),
) -> RoomUsageResponse:
    try:
        usage = service.room_usage(room_id, on_date.isoformat() if on_date else None)
    except RoomNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    return RoomUsageResponse(
        room_id=usage.room_id,
        total_bookings=usage.total_bookings,
        total_hours=usage.total_hours,
        reservations=[ReservationResponse.from_domain(item) for item in usage.reservations_on_date],
    )


@router.get("/usage/daily", response_model=list[DailyHoursRow], status_code=status.HTTP_200_OK)
async def daily_usage(
    service: UsageService = Depends(get_usage_service),
) -> list[DailyHoursRow]:
    frame = service.daily_hours()
    return [
        DailyHoursRow(
            date=str(day),
            hours_by_room={int(room_id): float(hours) for room_id, hours in row.items()},
        )
        for day, row in frame.iterrows()
    ]


@router.get("/schedule", response_model=ScheduleResponse, status_code=status.HTTP_200_OK)
async def schedule(
    on_date: date = Query(alias="date"),
    meeting_id: Optional[int] = Query(default=None, gt=0),
    editing_reservation_id: Optional[int] = Query(default=None, gt=0),
    viewer_id: Optional[str] = None,
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleResponse:
    """Room × slot grid for one day, lit up for the meeting or edit in progress."""
    try:
        rows = service.get_schedule(
            date=on_date.isoformat(),
            meeting_id=meeting_id,
            editing_reservation_id=editing_reservation_id,
            viewer_id=viewer_id,
        )
    except SchedulingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except (MeetingNotFoundError, ReservationNotFoundError) as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected schedule failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build schedule",
        ) from exc

    return ScheduleResponse(
        date=on_date.isoformat(),
        time_slots=service.time_slots(),
        rows=[
            ScheduleRowResponse(
                room=RoomResponse.from_domain(row.room),
                cells=[
                    ScheduleCellResponse(
                        time=cell.time,
                        state=cell.state,
                        reservation_id=cell.reservation_id,
                        label=cell.label,
                        span=cell.span,
                        topic=cell.topic,
                    )
                    for cell in row.cells
                ],
            )
            for row in rows
        ],
    )
