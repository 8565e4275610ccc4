"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

import secrets
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from venue_scheduler.services.availability_service import AvailabilityService
from venue_scheduler.services.booking_service import BookingService
from venue_scheduler.services.room_service import RoomService
from venue_scheduler.services.schedule_service import ScheduleService
from venue_scheduler.services.suggestion_service import SuggestionService
from venue_scheduler.services.usage_service import UsageService
from venue_scheduler.utils.config import get_settings


bearer_scheme = HTTPBearer(auto_error=False)


def _service(request: Request, name: str, label: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service is not initialized",
        )
    return service


def get_availability_service(request: Request) -> AvailabilityService:
    return _service(request, "availability_service", "Availability")


def get_suggestion_service(request: Request) -> SuggestionService:
    return _service(request, "suggestion_service", "Suggestion")


def get_booking_service(request: Request) -> BookingService:
    return _service(request, "booking_service", "Booking")


def get_room_service(request: Request) -> RoomService:
    return _service(request, "room_service", "Room")


def get_schedule_service(request: Request) -> ScheduleService:
    return _service(request, "schedule_service", "Schedule")


def get_usage_service(request: Request) -> UsageService:
    return _service(request, "usage_service", "Usage")


async def require_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> None:
    """Bearer check against ADMIN_TOKEN; open when no token is configured."""
    settings = getattr(request.app.state, "settings", None) or get_settings()
    expected = settings.admin_token
    if not expected:
        return
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header with Bearer token is required",
        )
    if not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token",
        )
