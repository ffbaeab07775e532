"""
Tests for top period calendar arithmetic
"""
from datetime import datetime, timedelta, timezone

import pytest

from topledger.domain.top_period import (
    as_utc,
    current_day,
    expiry_cutoff,
    is_expired,
    planned_end,
    time_remaining,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("offset, expected", [
    (timedelta(0), 1),
    (timedelta(hours=23, minutes=59), 1),
    (timedelta(hours=24), 2),
    (timedelta(days=3, hours=5), 4),
    (timedelta(days=6, hours=23, minutes=59), 7),
    (timedelta(days=7), 7),
    (timedelta(days=30), 7),
])
def test_current_day(offset, expected):
    assert current_day(T0, T0 + offset) == expected


def test_current_day_never_exceeds_seven():
    for hours in range(0, 24 * 40, 7):
        assert 1 <= current_day(T0, T0 + timedelta(hours=hours)) <= 7


def test_current_day_clock_behind_start():
    assert current_day(T0, T0 - timedelta(hours=3)) == 1


def test_naive_timestamps_are_treated_as_utc():
    naive = datetime(2026, 3, 2, 9, 0)
    assert as_utc(naive) == T0
    assert current_day(naive, T0 + timedelta(days=2)) == 3


def test_planned_end_is_seven_days_later():
    assert planned_end(T0) == T0 + timedelta(days=7)


def test_time_remaining_clamped_at_zero():
    assert time_remaining(T0, T0 + timedelta(days=1)) == timedelta(days=6)
    assert time_remaining(T0, T0 + timedelta(days=9)) == timedelta(0)


def test_is_expired_boundary():
    assert not is_expired(T0, T0 + timedelta(days=7) - timedelta(seconds=1))
    assert is_expired(T0, T0 + timedelta(days=7))


def test_expiry_cutoff():
    now = T0 + timedelta(days=7)
    assert expiry_cutoff(now) == T0
