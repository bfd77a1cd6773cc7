"""
Canonical match status.

One resolver for every consumer: routes, permissions and the result workflow
all read status through ``canonical_status`` / ``resolve_status`` instead of
re-deriving it inline.

Rules:
- A terminal status stored on the match (COMPLETED/FINISHED/CANCELLED/VOID)
  always wins over anything computed from the clock.
- For SCHEDULED matches a time phase (scheduled / in_progress / time_passed)
  is derived for display only. It never feeds authorization.
- Legacy "Mon DD, YYYY" + "H:MM AM/PM" strings are parsed only when
  ``match_date`` is missing. Anything unparseable means "start unknown",
  which is treated as not yet reached.
"""
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

import pytz

from app.models.match import Match

logger = logging.getLogger(__name__)

LEAGUE_TIMEZONE = os.getenv("LEAGUE_TIMEZONE", "UTC")

DEFAULT_DURATION_HOURS = 2


class MatchStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    ONGOING = "ONGOING"
    UNFINISHED = "UNFINISHED"
    COMPLETED = "COMPLETED"
    FINISHED = "FINISHED"  # legacy synonym of COMPLETED
    CANCELLED = "CANCELLED"
    DRAFT = "DRAFT"
    VOID = "VOID"


TERMINAL_STATUSES = frozenset({MatchStatus.COMPLETED, MatchStatus.CANCELLED, MatchStatus.VOID})

_STATUS_ALIASES = {
    "FINISHED": MatchStatus.COMPLETED,
    "IN_PROGRESS": MatchStatus.ONGOING,
    "OPEN": MatchStatus.SCHEDULED,
}


class TimePhase(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    TIME_PASSED = "time_passed"


@dataclass(frozen=True)
class ResolvedStatus:
    status: MatchStatus
    time_phase: Optional[TimePhase]
    label: str

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def canonical_status(raw: Optional[str]) -> Optional[MatchStatus]:
    """Map a stored status string to its canonical value.

    Empty means SCHEDULED (the creation default). FINISHED collapses to
    COMPLETED. Returns None for values this service does not know.
    """
    if not raw or not raw.strip():
        return MatchStatus.SCHEDULED
    value = raw.strip().upper()
    if value in _STATUS_ALIASES:
        return _STATUS_ALIASES[value]
    try:
        return MatchStatus(value)
    except ValueError:
        return None


def is_terminal_status(raw: Optional[str]) -> bool:
    return canonical_status(raw) in TERMINAL_STATUSES


# ── Start time ───────────────────────────────────────────────────────────

_MONTHS = {
    "Jan": 1, "Feb": 2, "Mar": 3, "Apr": 4, "May": 5, "Jun": 6,
    "Jul": 7, "Aug": 8, "Sep": 9, "Oct": 10, "Nov": 11, "Dec": 12,
}
_DATE_RE = re.compile(r"(\w+)\s+(\d+),\s+(\d+)")
_TIME_RE = re.compile(r"(\d+):(\d+)\s*(AM|PM)", re.IGNORECASE)


def _league_tz(tz_name: Optional[str]):
    name = tz_name or LEAGUE_TIMEZONE
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown league timezone '{name}', falling back to UTC")
        return pytz.UTC


def parse_legacy_start(
    date_str: Optional[str], time_str: Optional[str], tz_name: Optional[str] = None
) -> Optional[datetime]:
    """
    Parse legacy "Dec 04, 2025" + "1:30 PM" strings into a naive UTC datetime.

    The strings are local wall-clock time in the league timezone.
    Returns None if either part is missing or malformed.
    """
    if not date_str or not time_str:
        return None

    date_match = _DATE_RE.search(date_str)
    if not date_match:
        return None
    month_str, day_str, year_str = date_match.groups()
    month = _MONTHS.get(month_str)
    if month is None:
        return None

    time_match = _TIME_RE.search(time_str)
    if not time_match:
        return None
    hour_str, minute_str, period = time_match.groups()
    hours = int(hour_str)
    minutes = int(minute_str)
    if period.upper() == "PM" and hours != 12:
        hours += 12
    elif period.upper() == "AM" and hours == 12:
        hours = 0

    try:
        local = datetime(int(year_str), month, int(day_str), hours, minutes)
    except ValueError:
        return None

    tz = _league_tz(tz_name)
    return tz.localize(local).astimezone(pytz.UTC).replace(tzinfo=None)


def match_start_time(match: Match) -> Optional[datetime]:
    """``match_date`` when present, otherwise the legacy date/time strings."""
    if match.match_date is not None:
        return match.match_date
    return parse_legacy_start(match.date, match.time)


def is_match_time_reached(match: Match, now: datetime) -> bool:
    start = match_start_time(match)
    if start is None:
        return False
    return now >= start


def _duration_hours(match: Match) -> int:
    try:
        return int(match.duration or DEFAULT_DURATION_HOURS)
    except (TypeError, ValueError):
        return DEFAULT_DURATION_HOURS


def time_phase(match: Match, now: datetime) -> Optional[TimePhase]:
    start = match_start_time(match)
    if start is None:
        return None
    if now < start:
        return TimePhase.SCHEDULED
    if now <= start + timedelta(hours=_duration_hours(match)):
        return TimePhase.IN_PROGRESS
    # Past the scheduled duration
    return TimePhase.TIME_PASSED


# ── Resolution ───────────────────────────────────────────────────────────

def resolve_status(match: Match, now: datetime, all_slots_filled: bool = False) -> ResolvedStatus:
    """Canonical status plus display label for a match."""
    status = canonical_status(match.status) or MatchStatus.SCHEDULED

    if status == MatchStatus.COMPLETED:
        return ResolvedStatus(status, None, "Walkover" if match.is_walkover else "Finished")
    if status == MatchStatus.CANCELLED:
        return ResolvedStatus(status, None, "Cancelled")
    if status == MatchStatus.VOID:
        return ResolvedStatus(status, None, "Voided")
    if status == MatchStatus.ONGOING:
        return ResolvedStatus(status, None, "Disputed" if match.is_disputed else "In Progress")
    if status == MatchStatus.DRAFT:
        return ResolvedStatus(status, None, "Draft")
    if status == MatchStatus.UNFINISHED:
        return ResolvedStatus(status, None, "Unfinished")

    phase = time_phase(match, now)
    if phase == TimePhase.IN_PROGRESS:
        label = "In Progress"
    elif phase == TimePhase.TIME_PASSED:
        label = "Time Passed"
    elif all_slots_filled:
        label = "Scheduled"
    else:
        label = "Open"
    return ResolvedStatus(status, phase, label)
