"""Cooldown projection for repeatable actions (daily check-in, mining cycle).

Pure functions, no I/O. The same projection is served to clients for their
countdown display and re-evaluated inside every settlement transaction, which
is the only place it gates anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

ZERO = timedelta(0)


@dataclass(frozen=True)
class Ready:
    """The action may be performed now."""

    remaining: timedelta = ZERO

    @property
    def is_ready(self) -> bool:
        return True


@dataclass(frozen=True)
class Waiting:
    """The action becomes available after ``remaining``."""

    remaining: timedelta

    @property
    def is_ready(self) -> bool:
        return False


CooldownState = Ready | Waiting


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def remaining(started_at: datetime | None, duration: timedelta, now: datetime) -> timedelta:
    """Time left until ``started_at + duration``, never negative."""
    if started_at is None:
        return ZERO
    left = as_utc(started_at) + duration - as_utc(now)
    return max(ZERO, left)


def cooldown_state(started_at: datetime | None, duration: timedelta, now: datetime) -> CooldownState:
    left = remaining(started_at, duration, now)
    if left > ZERO:
        return Waiting(left)
    return Ready()


def format_remaining(left: timedelta) -> str:
    """Render as ``HHh MMm SSs``; hours are not wrapped at 24."""
    total = max(0, int(left.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}h {minutes:02d}m {seconds:02d}s"
