#!/usr/bin/env python3
"""Validate local venue scheduler environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from venue_scheduler.domain.models import Suggestion
from venue_scheduler.repository.data_repository import DataRepository
from venue_scheduler.services.booking_service import BookingService
from venue_scheduler.services.suggestion_service import suggest
from venue_scheduler.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="venue-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = [
        "fastapi",
        "uvicorn",
        "pydantic",
        "pandas",
        "requests",
        "streamlit",
        "httpx",
        "pytest",
    ]
    import_errors: list[str] = []
    for module_name in package_specs:
        try:
            importlib.import_module(module_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "venue_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Demo seed
        try:
            repository.seed_demo_data()
            room_count = len(repository.list_rooms())
            if room_count == 0:
                raise RuntimeError("no rooms after seeding")
            ok, line = _print_result("Demo seed", True, f": {room_count} rooms")
        except Exception as exc:
            ok, line = _print_result("Demo seed", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Book, then search past the booking
        try:
            meeting = repository.create_meeting(
                requester_id="delegate-ada",
                recipient_ids=("delegate-alan",),
                proposed_duration=60,
                proposed_topic="Environment check",
            )
            room = repository.list_rooms(active_only=True)[0]
            BookingService(repository=repository, settings=validation_settings).book_meeting(
                meeting_id=meeting.meeting_id,
                room_id=room.room_id,
                date="2030-01-07",
                start_time="09:00",
                booked_by="delegate-ada",
            )
            result = suggest(
                [room],
                2,
                "2030-01-07",
                "09:00",
                60,
                repository.list_reservations(status="active"),
            )
            if not isinstance(result, Suggestion) or result.time != "10:00":
                raise RuntimeError(f"unexpected suggestion {result}")
            ok, line = _print_result("Booking and suggestion", True, f": next slot {result.time}")
        except Exception as exc:
            ok, line = _print_result("Booking and suggestion", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Venue Scheduler Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
