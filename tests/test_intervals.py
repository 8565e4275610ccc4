"""Tests for half-open interval overlap and wall-clock arithmetic."""

from __future__ import annotations

from datetime import datetime
from itertools import product

import pytest

from venue_scheduler.domain.intervals import (
    Interval,
    add_minutes,
    combine,
    format_date,
    format_time,
    overlaps,
    window,
)


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 3, 1, hour, minute)


def test_overlap_is_symmetric() -> None:
    starts = [at(9), at(9, 30), at(10), at(10, 30), at(11)]
    intervals = [Interval(start, add_minutes(start, length)) for start, length in product(starts, (30, 60, 90))]
    for a, b in product(intervals, repeat=2):
        assert overlaps(a, b) == overlaps(b, a)


def test_touching_intervals_do_not_overlap() -> None:
    a = Interval(at(10), at(11))
    b = Interval(at(11), at(12))
    assert overlaps(a, b) is False


def test_partial_overlap_is_detected() -> None:
    a = Interval(at(10), at(11))
    b = Interval(at(10, 30), at(11, 30))
    assert overlaps(a, b) is True


def test_containment_overlaps() -> None:
    outer = Interval(at(9), at(12))
    inner = Interval(at(10), at(10, 30))
    assert overlaps(outer, inner)
    assert overlaps(inner, outer)


def test_add_minutes_rolls_over_midnight() -> None:
    late = datetime(2024, 3, 1, 23, 45)
    shifted = add_minutes(late, 30)
    assert format_date(shifted) == "2024-03-02"
    assert format_time(shifted) == "00:15"


def test_window_combines_date_and_time() -> None:
    span = window("2024-03-01", "09:00", 45)
    assert span.start == at(9)
    assert span.end == at(9, 45)
    assert span.duration_minutes == 45


@pytest.mark.parametrize(
    ("date_value", "time_value"),
    [("2024-13-01", "09:00"), ("2024-03-01", "25:00"), ("01/03/2024", "09:00"), ("2024-03-01", "9am")],
)
def test_combine_rejects_malformed_input(date_value: str, time_value: str) -> None:
    with pytest.raises(ValueError):
        combine(date_value, time_value)
