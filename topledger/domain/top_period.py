"""
Top period lifecycle: statuses and 7-day calendar arithmetic.

A top closes after 7 calendar days (7 x 24h) from started_at, not after
7 distinct worked days.
"""
from datetime import datetime, timedelta, timezone

TOP_STATUS_ACTIVE = "active"
TOP_STATUS_STOPPED = "stopped"      # user pressed stop
TOP_STATUS_COMPLETED = "completed"  # 7 days elapsed (sweep)
TOP_STATUS_CANCELLED = "cancelled"  # closed by an admin

TERMINAL_STATUSES = (TOP_STATUS_STOPPED, TOP_STATUS_COMPLETED, TOP_STATUS_CANCELLED)

TOP_LENGTH_DAYS = 7
TOP_LENGTH = timedelta(days=TOP_LENGTH_DAYS)


def as_utc(dt: datetime) -> datetime:
    """SQLite hands back naive timestamps; everything stored is UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def planned_end(started_at: datetime) -> datetime:
    return as_utc(started_at) + TOP_LENGTH


def current_day(started_at: datetime, now: datetime) -> int:
    """
    Day number 1..7 of the top at `now`.

    min(7, floor(hours_elapsed / 24) + 1); never above 7 even when the sweep
    is late, never below 1 when the clock is behind started_at.
    """
    elapsed = as_utc(now) - as_utc(started_at)
    if elapsed < timedelta(0):
        return 1
    day = int(elapsed // timedelta(hours=24)) + 1
    return min(TOP_LENGTH_DAYS, day)


def time_remaining(started_at: datetime, now: datetime) -> timedelta:
    """Time left until the top expires, clamped at zero."""
    remaining = planned_end(started_at) - as_utc(now)
    return max(remaining, timedelta(0))


def is_expired(started_at: datetime, now: datetime) -> bool:
    return as_utc(now) - as_utc(started_at) >= TOP_LENGTH


def expiry_cutoff(now: datetime) -> datetime:
    """Tops started at or before this moment are due for closure."""
    return as_utc(now) - TOP_LENGTH
