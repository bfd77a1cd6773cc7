"""
Walkover recording.

A walkover completes the match immediately in favour of the side that did
not default. There is no confirmation step and no dispute window.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Session

from app.models.match import Match
from app.services.match_events import MatchEventPublisher
from app.services.match_roles import TEAM1, TEAM2, active_participants, find_participant, side_of, slot_state
from app.services.match_status import is_match_time_reached
from app.services.match_store import MatchStore
from app.services.result_workflow import (
    WorkflowAction,
    WorkflowState,
    commit_transition,
    require_transition,
    storage_for,
    workflow_state,
)
from app.services.workflow_errors import (
    AlreadyProcessed,
    NotAuthorized,
    PreconditionFailed,
    ValidationError,
)


class WalkoverReason(str, Enum):
    NO_SHOW = "NO_SHOW"
    LATE_CANCELLATION = "LATE_CANCELLATION"
    INJURY = "INJURY"
    PERSONAL_EMERGENCY = "PERSONAL_EMERGENCY"
    OTHER = "OTHER"


WALKOVER_REASON_LABELS = {
    WalkoverReason.NO_SHOW: "No Show",
    WalkoverReason.LATE_CANCELLATION: "Late Cancellation",
    WalkoverReason.INJURY: "Injury",
    WalkoverReason.PERSONAL_EMERGENCY: "Personal Emergency",
    WalkoverReason.OTHER: "Other",
}


def format_walkover_reason(reason: Optional[str]) -> str:
    if not reason:
        return "Unknown"
    try:
        return WALKOVER_REASON_LABELS[WalkoverReason(reason.upper())]
    except ValueError:
        return reason.replace("_", " ").title()


def _winning_player(store: MatchStore, match: Match, participants, defaulting_user_id: str) -> Optional[str]:
    side = side_of(participants, defaulting_user_id)
    if side is None:
        # Unassigned singles players: the winner is simply the other one
        others = [p.user_id for p in active_participants(participants) if p.user_id != defaulting_user_id]
        return others[0] if len(others) == 1 else None
    other_side = TEAM2 if side == TEAM1 else TEAM1
    return store.side_captain(match, participants, other_side)


def record_walkover(
    session: Session,
    match_id: int,
    actor_id: str,
    defaulting_user_id: str,
    reason: str,
    now: datetime,
    reason_detail: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    publisher: Optional[MatchEventPublisher] = None,
) -> Match:
    try:
        reason = WalkoverReason((reason or "").upper())
    except ValueError:
        raise ValidationError(f"Unknown walkover reason '{reason}'", code="INVALID_WALKOVER_REASON")

    store = MatchStore(session)
    match = store.get_match(match_id, for_update=True)
    if store.action_logged(match_id, idempotency_key):
        raise AlreadyProcessed(f"Request {idempotency_key} was already applied to match {match_id}")

    state = workflow_state(match)
    if state == WorkflowState.COMPLETED and match.is_walkover:
        raise AlreadyProcessed(f"Walkover already recorded for match {match_id}")
    target = require_transition(state, WorkflowAction.WALKOVER)

    participants = store.participants(match_id)
    active = active_participants(participants)
    if find_participant(active, actor_id) is None:
        raise NotAuthorized(f"User {actor_id} is not a participant of match {match_id}")
    if find_participant(active, defaulting_user_id) is None:
        raise ValidationError(
            f"User {defaulting_user_id} is not a participant of match {match_id}", code="INVALID_DEFAULTING_PLAYER"
        )

    if state == WorkflowState.SCHEDULED:
        slots = slot_state(match, participants)
        if not slots.all_filled:
            raise PreconditionFailed(f"Match {match_id} is missing players", code="SLOTS_NOT_FILLED")
        if not slots.all_accepted:
            raise PreconditionFailed(f"Match {match_id} has pending invitations", code="INVITATIONS_PENDING")
        if not is_match_time_reached(match, now):
            raise PreconditionFailed(f"Match {match_id} has not started yet", code="MATCH_TIME_NOT_REACHED")

    winner = _winning_player(store, match, participants, defaulting_user_id)
    if winner is None:
        raise PreconditionFailed(f"Match {match_id} has no opposing side", code="NO_OPPONENT")

    changes = storage_for(target)
    changes.update(
        is_walkover=True,
        walkover_reason=reason.value,
        walkover_defaulting_player_id=defaulting_user_id,
        walkover_winning_player_id=winner,
        walkover_reason_detail=(reason_detail or "").strip() or None,
        walkover_recorded_by_id=actor_id,
        completed_at=now,
    )
    return commit_transition(
        store,
        match,
        WorkflowAction.WALKOVER.value,
        actor_id,
        changes,
        now,
        idempotency_key,
        publisher=publisher,
    )
