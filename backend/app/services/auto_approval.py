"""
24-hour auto-approval rule.

``countdown`` is display math for clients. ``is_auto_approval_due`` is the
same rule evaluated server-side and is the only basis for the authoritative
auto-approval transition.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.models.match import Match
from app.services.match_status import MatchStatus, canonical_status

AUTO_APPROVAL_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class Countdown:
    hours: int
    minutes: int
    expired: bool


def auto_approval_deadline(result_submitted_at: datetime) -> datetime:
    return result_submitted_at + AUTO_APPROVAL_WINDOW


def countdown(result_submitted_at: datetime, now: datetime) -> Countdown:
    remaining = auto_approval_deadline(result_submitted_at) - now
    if remaining <= timedelta(0):
        return Countdown(hours=0, minutes=0, expired=True)
    hours, rest = divmod(remaining, timedelta(hours=1))
    minutes = rest // timedelta(minutes=1)
    return Countdown(hours=int(hours), minutes=int(minutes), expired=False)


def match_countdown(match: Match, now: datetime) -> Optional[Countdown]:
    """Countdown for a result awaiting confirmation, else None."""
    if canonical_status(match.status) != MatchStatus.ONGOING or match.result_submitted_at is None:
        return None
    return countdown(match.result_submitted_at, now)


def is_auto_approval_due(match: Match, now: datetime) -> bool:
    if canonical_status(match.status) != MatchStatus.ONGOING:
        return False
    if match.is_disputed or match.result_submitted_at is None:
        return False
    return now - match.result_submitted_at >= AUTO_APPROVAL_WINDOW
