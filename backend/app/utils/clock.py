"""
Time source for the match workflow.

All timestamps are stored as naive UTC datetimes. Services never read the
system clock themselves; they take ``now`` from a Clock so tests and the
auto-approval sweep can pin time.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SystemClock:
    def now(self) -> datetime:
        return utc_now()


class FixedClock:
    """Clock pinned to a given instant. Used by tests and replay tooling."""

    def __init__(self, now: Optional[datetime] = None):
        self._now = to_naive_utc(now) if now is not None else utc_now()

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = to_naive_utc(now)

    def advance(self, delta) -> datetime:
        self._now = self._now + delta
        return self._now


_clock = SystemClock()


def get_clock():
    """FastAPI dependency; overridden in tests."""
    return _clock
