"""Who may cancel a scheduled match, and whether the cancellation is late."""
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Sequence

from app.models.match import Match
from app.models.match_participant import MatchParticipant
from app.services.match_roles import find_participant, slot_state, INVITE_DECLINED
from app.services.match_status import MatchStatus, canonical_status, is_match_time_reached, match_start_time

LATE_CANCELLATION_WINDOW = timedelta(hours=4)


class CancellationReason(str, Enum):
    PERSONAL_EMERGENCY = "PERSONAL_EMERGENCY"
    INJURY = "INJURY"
    ILLNESS = "ILLNESS"
    WEATHER = "WEATHER"
    SCHEDULING_CONFLICT = "SCHEDULING_CONFLICT"
    WORK_COMMITMENT = "WORK_COMMITMENT"
    FAMILY_EMERGENCY = "FAMILY_EMERGENCY"
    OTHER = "OTHER"


def can_cancel(
    match: Match,
    participants: Sequence[MatchParticipant],
    actor_id: Optional[str],
    now: datetime,
) -> bool:
    if canonical_status(match.status) != MatchStatus.SCHEDULED:
        return False

    is_creator = actor_id is not None and actor_id == match.created_by_id
    me = find_participant(participants, actor_id)
    is_participant = me is not None and (me.invitation_status or "").upper() != INVITE_DECLINED
    time_reached = is_match_time_reached(match, now)
    all_filled = slot_state(match, participants).all_filled

    # Orphaned match: start passed with nobody to play against
    if time_reached and not all_filled and is_creator:
        return True
    # Full and started; must go through the result or walkover flow
    if time_reached and all_filled:
        return False
    return is_participant or is_creator


def is_late_cancellation(match: Match, now: datetime) -> bool:
    """Start is in the future but less than four hours away."""
    start = match_start_time(match)
    if start is None:
        return False
    remaining = start - now
    return timedelta(0) < remaining < LATE_CANCELLATION_WINDOW
