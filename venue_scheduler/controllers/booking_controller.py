"""HTTP controller layer for availability, suggestions and reservation writes."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator, model_validator

from venue_scheduler.controllers.dependencies import (
    get_availability_service,
    get_booking_service,
    get_suggestion_service,
    require_admin,
)
from venue_scheduler.domain.models import Reservation, SchedulingRequest, Suggestion
from venue_scheduler.repository.data_repository import RepositoryError, SlotUnavailableError
from venue_scheduler.services.availability_service import (
    AvailabilityService,
    SchedulingValidationError,
)
from venue_scheduler.services.booking_service import (
    BookingConflictError,
    BookingService,
    BookingValidationError,
    MeetingNotFoundError,
    ReservationNotFoundError,
    RoomNotFoundError,
)
from venue_scheduler.services.suggestion_service import SuggestionService
from venue_scheduler.utils.config import get_settings
from venue_scheduler.utils.logger import get_logger


logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(tags=["booking"])


def _check_duration(value: Optional[int]) -> Optional[int]:
    if value is not None and value not in settings.allowed_durations:
        allowed = ", ".join(str(item) for item in settings.allowed_durations)
        raise ValueError(f"duration_minutes must be one of {allowed}")
    return value


class ReservationResponse(BaseModel):
    reservation_id: int = Field(gt=0)
    room_id: int = Field(gt=0)
    room_name: str
    start_time: datetime
    end_time: datetime
    status: str
    booking_type: str
    booked_by: str | None = None
    meeting_request_id: int | None = None
    topic: str | None = None

    @classmethod
    def from_domain(cls, reservation: Reservation) -> "ReservationResponse":
        return cls(
            reservation_id=reservation.reservation_id,
            room_id=reservation.room_id,
            room_name=reservation.room_name,
            start_time=reservation.start_time,
            end_time=reservation.end_time,
            status=reservation.status,
            booking_type=reservation.booking_type,
            booked_by=reservation.booked_by,
            meeting_request_id=reservation.meeting_request_id,
            topic=reservation.topic,
        )


class AvailabilityRequest(BaseModel):
    room_id: int = Field(gt=0)
    date: date
    time: str = Field(pattern=settings.time_regex)
    duration_minutes: int = Field(gt=0)
    exclude_reservation_id: int | None = Field(default=None, gt=0)


class AvailabilityResponse(BaseModel):
    available: bool
    conflicts: list[ReservationResponse]


class SuggestRequest(BaseModel):
    date: date
    time: str = Field(pattern=settings.time_regex)
    meeting_id: int | None = Field(default=None, gt=0)
    duration_minutes: int | None = Field(default=None, gt=0)
    attendee_count: int = Field(default=0, ge=0)
    exclude_reservation_id: int | None = Field(default=None, gt=0)
    room_ids: list[int] | None = None

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        return _check_duration(value)

    @model_validator(mode="after")
    def require_duration_or_meeting(self) -> "SuggestRequest":
        if self.meeting_id is None and self.duration_minutes is None:
            raise ValueError("either meeting_id or duration_minutes is required")
        return self


class SuggestResponse(BaseModel):
    room_id: int | None = None
    room_name: str | None = None
    date: str | None = None
    time: str | None = None
    error: str | None = None


class BookMeetingRequest(BaseModel):
    room_id: int = Field(gt=0)
    date: date
    time: str = Field(pattern=settings.time_regex)
    booked_by: str = Field(min_length=1)


class MeetingActionRequest(BaseModel):
    actor_id: str = Field(min_length=1)


class DurationChangeRequest(BaseModel):
    actor_id: str = Field(min_length=1)
    proposed_duration: int = Field(gt=0)

    @field_validator("proposed_duration")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        return _check_duration(value)


class MeetingActionResponse(BaseModel):
    meeting_id: int
    released_reservation: ReservationResponse | None = None


class PrivateReservationRequest(BaseModel):
    room_id: int = Field(gt=0)
    date: date
    start_time: str = Field(pattern=settings.time_regex)
    end_time: str = Field(pattern=settings.time_regex)
    topic: str = Field(min_length=1)
    booked_by: str = Field(min_length=1)


def _write_error(exc: Exception, action: str) -> HTTPException:
    """Translate service and store failures of a write into HTTP errors."""
    if isinstance(exc, (BookingValidationError, SchedulingValidationError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, (RoomNotFoundError, MeetingNotFoundError, ReservationNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (BookingConflictError, SlotUnavailableError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, RepositoryError):
        logger.error("Store failure while trying to %s: %s", action, exc)
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to {action}; nothing was committed",
        )
    logger.exception("Unexpected failure while trying to %s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


@router.post("/availability", response_model=AvailabilityResponse, status_code=status.HTTP_200_OK)
async def check_availability(
    payload: AvailabilityRequest,
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    try:
        conflicts = service.check(
            room_id=payload.room_id,
            date=payload.date.isoformat(),
            start_time=payload.time,
            duration_minutes=payload.duration_minutes,
            exclude_reservation_id=payload.exclude_reservation_id,
        )
        return AvailabilityResponse(
            available=not conflicts,
            conflicts=[ReservationResponse.from_domain(item) for item in conflicts],
        )
    except SchedulingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected availability failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check availability",
        ) from exc


@router.post("/suggest", response_model=SuggestResponse, status_code=status.HTTP_200_OK)
async def suggest_slot(
    payload: SuggestRequest,
    service: SuggestionService = Depends(get_suggestion_service),
    booking_service: BookingService = Depends(get_booking_service),
) -> SuggestResponse:
    """Search forward for the first free room/time; never writes."""
    try:
        if payload.meeting_id is not None:
            request = booking_service.scheduling_request_for(
                payload.meeting_id,
                payload.date.isoformat(),
                payload.time,
            )
        else:
            request = SchedulingRequest(
                date=payload.date.isoformat(),
                start_time=payload.time,
                duration_minutes=payload.duration_minutes or 0,
                attendee_count=payload.attendee_count,
                exclude_reservation_id=payload.exclude_reservation_id,
            )
        result = service.suggest(request, room_ids=payload.room_ids)
    except SchedulingValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except MeetingNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected suggestion failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search for alternative slots",
        ) from exc

    if isinstance(result, Suggestion):
        return SuggestResponse(
            room_id=result.room.room_id,
            room_name=result.room.name,
            date=result.date,
            time=result.time,
        )
    return SuggestResponse(error=result.error)


@router.post(
    "/meetings/{meeting_id}/booking",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_meeting(
    meeting_id: int,
    payload: BookMeetingRequest,
    service: BookingService = Depends(get_booking_service),
) -> ReservationResponse:
    """Book or move the venue of a meeting."""
    try:
        reservation = service.book_meeting(
            meeting_id=meeting_id,
            room_id=payload.room_id,
            date=payload.date.isoformat(),
            start_time=payload.time,
            booked_by=payload.booked_by,
        )
    except Exception as exc:
        raise _write_error(exc, "book the venue") from exc
    return ReservationResponse.from_domain(reservation)


@router.post(
    "/meetings/{meeting_id}/cancel",
    response_model=MeetingActionResponse,
    status_code=status.HTTP_200_OK,
)
async def cancel_meeting(
    meeting_id: int,
    payload: MeetingActionRequest,
    service: BookingService = Depends(get_booking_service),
) -> MeetingActionResponse:
    try:
        released = service.cancel_meeting(meeting_id=meeting_id, actor_id=payload.actor_id)
    except Exception as exc:
        raise _write_error(exc, "cancel the meeting") from exc
    return MeetingActionResponse(
        meeting_id=meeting_id,
        released_reservation=ReservationResponse.from_domain(released) if released else None,
    )


@router.post(
    "/meetings/{meeting_id}/duration",
    response_model=MeetingActionResponse,
    status_code=status.HTTP_200_OK,
)
async def change_meeting_duration(
    meeting_id: int,
    payload: DurationChangeRequest,
    service: BookingService = Depends(get_booking_service),
) -> MeetingActionResponse:
    try:
        released = service.change_meeting_duration(
            meeting_id=meeting_id,
            proposed_duration=payload.proposed_duration,
            actor_id=payload.actor_id,
        )
    except Exception as exc:
        raise _write_error(exc, "change the meeting duration") from exc
    return MeetingActionResponse(
        meeting_id=meeting_id,
        released_reservation=ReservationResponse.from_domain(released) if released else None,
    )


@router.post(
    "/reservations/private",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_private_reservation(
    payload: PrivateReservationRequest,
    service: BookingService = Depends(get_booking_service),
) -> ReservationResponse:
    try:
        reservation = service.create_private_reservation(
            room_id=payload.room_id,
            date=payload.date.isoformat(),
            start_time=payload.start_time,
            end_time=payload.end_time,
            topic=payload.topic,
            booked_by=payload.booked_by,
        )
    except Exception as exc:
        raise _write_error(exc, "reserve the room") from exc
    return ReservationResponse.from_domain(reservation)


@router.post(
    "/reservations/{reservation_id}/cancel",
    response_model=ReservationResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def cancel_reservation(
    reservation_id: int,
    service: BookingService = Depends(get_booking_service),
) -> ReservationResponse:
    try:
        reservation = service.cancel_reservation(reservation_id)
    except Exception as exc:
        raise _write_error(exc, "cancel the reservation") from exc
    return ReservationResponse.from_domain(reservation)
