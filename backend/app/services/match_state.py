"""
Read model for one match as seen by one actor.

Bundles everything a client needs to render and act: the match, its
participants with player details, the actor's partnership, the resolved
status, the permitted actions and the auto-approval countdown. A due
auto-approval is applied first so nobody reads a stale pending result.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlmodel import Session

from app.models.match import Match
from app.models.match_participant import MatchParticipant
from app.models.player import Player
from app.services.auto_approval import Countdown, is_auto_approval_due, match_countdown
from app.services.match_permissions import PermissionDecision, permission_decision
from app.services.match_roles import PartnershipView, SlotState, as_partnership_view, slot_state
from app.services.match_status import ResolvedStatus, resolve_status
from app.services.match_store import MatchStore
from app.services.result_workflow import auto_approve


@dataclass
class MatchState:
    match: Match
    participants: List[MatchParticipant]
    players: Dict[str, Player]
    partnership: Optional[PartnershipView]
    status: ResolvedStatus
    decision: PermissionDecision
    slots: SlotState
    countdown: Optional[Countdown]


def get_match_state(
    session: Session,
    match_id: int,
    actor_id: Optional[str],
    now: datetime,
    publisher=None,
) -> MatchState:
    store = MatchStore(session)
    match = store.get_match(match_id)
    if is_auto_approval_due(match, now):
        match = auto_approve(session, match_id, now, publisher=publisher)

    participants = store.participants(match_id)
    partnership = store.actor_partnership(match, participants, actor_id)
    slots = slot_state(match, participants)
    return MatchState(
        match=match,
        participants=participants,
        players=store.player_details(p.user_id for p in participants),
        partnership=as_partnership_view(partnership),
        status=resolve_status(match, now, all_slots_filled=slots.all_filled),
        decision=permission_decision(match, participants, partnership, actor_id, now),
        slots=slots,
        countdown=match_countdown(match, now),
    )
