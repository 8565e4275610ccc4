"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires all services, registers routers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from venue_scheduler.controllers.booking_controller import router as booking_router
from venue_scheduler.controllers.rooms_controller import router as rooms_router
from venue_scheduler.repository.data_repository import DataRepository
from venue_scheduler.services.availability_service import AvailabilityService
from venue_scheduler.services.booking_service import BookingService
from venue_scheduler.services.room_service import RoomService
from venue_scheduler.services.schedule_service import ScheduleService
from venue_scheduler.services.suggestion_service import SuggestionService
from venue_scheduler.services.usage_service import UsageService
from venue_scheduler.utils.config import Settings, get_settings
from venue_scheduler.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service shares one repository and is exposed through app.state
    for dependency resolution in the controllers.
    """
    settings = settings or get_settings()

    # --- Repository (SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services ---
    availability_service = AvailabilityService(repository=repository, settings=settings)
    suggestion_service = SuggestionService(repository=repository, settings=settings)
    booking_service = BookingService(repository=repository, settings=settings)
    room_service = RoomService(repository=repository, settings=settings)
    schedule_service = ScheduleService(repository=repository, settings=settings)
    usage_service = UsageService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(rooms_router)
    app.include_router(booking_router)

    app.state.settings = settings
    app.state.repository = repository
    app.state.availability_service = availability_service
    app.state.suggestion_service = suggestion_service
    app.state.booking_service = booking_service
    app.state.room_service = room_service
    app.state.schedule_service = schedule_service
    app.state.usage_service = usage_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    The schema must exist before the demo seed; the seed skips itself
    once any room exists.
    """
    repository: DataRepository = app.state.repository
    settings: Settings = app.state.settings

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo rooms and delegates")
        repository.seed_demo_data()

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
