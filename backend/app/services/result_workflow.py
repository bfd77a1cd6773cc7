"""
Result workflow: score submission, confirmation, dispute and auto-approval.

States are derived from the stored status and dispute flag. Allowed moves
are listed once in ``TRANSITIONS``; a (state, action) pair that is not in
the table does not exist.

Every operation is all-or-nothing:
1. read the match (row-locked where the database supports it),
2. validate input, state, roles and preconditions without touching the row,
3. apply one compare-and-swap UPDATE guarded by ``version``,
4. write the action log row and commit,
5. publish an invalidation hint.

A lost race (another writer bumped ``version``) is rejected as
``InvalidState`` with code CONCURRENT_UPDATE, and nothing is written.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.models.match import Match
from app.models.match_dispute import MatchDispute
from app.models.match_participant import MatchParticipant
from app.services.auto_approval import is_auto_approval_due
from app.services.cancellation_guard import CancellationReason, can_cancel, is_late_cancellation
from app.services.match_events import (
    MATCH_PARTICIPANT_JOINED,
    MATCH_UPDATED,
    MatchEventPublisher,
    get_event_publisher,
)
from app.services.match_roles import (
    INVITE_ACCEPTED,
    INVITE_DECLINED,
    INVITE_PENDING,
    TEAM1,
    TEAM2,
    find_participant,
    is_doubles,
    resolve_roles,
    slot_state,
)
from app.services.match_status import MatchStatus, canonical_status, is_match_time_reached
from app.services.match_store import MatchStore
from app.services.workflow_errors import (
    AlreadyProcessed,
    InvalidState,
    NotAuthorized,
    PreconditionFailed,
    ValidationError,
)

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    SCHEDULED = "Scheduled"
    AWAITING_CONFIRMATION = "AwaitingConfirmation"
    DISPUTED = "Disputed"
    UNFINISHED = "Unfinished"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    VOID = "Void"
    DRAFT = "Draft"


class WorkflowAction(str, Enum):
    SUBMIT = "submit"
    CONFIRM = "confirm"
    DISPUTE = "dispute"
    AUTO_APPROVE = "auto_approve"
    CANCEL = "cancel"
    VOID = "void"
    WALKOVER = "walkover"


class ReviewDecision(str, Enum):
    CONFIRM = "confirm"
    DISPUTE = "dispute"


class DisputeCategory(str, Enum):
    WRONG_SCORE = "WRONG_SCORE"
    NO_SHOW = "NO_SHOW"
    BEHAVIOR = "BEHAVIOR"
    OTHER = "OTHER"


TERMINAL_STATES = frozenset({WorkflowState.COMPLETED, WorkflowState.CANCELLED, WorkflowState.VOID})

_S = WorkflowState
_A = WorkflowAction

TRANSITIONS: Dict[tuple, WorkflowState] = {
    (_S.SCHEDULED, _A.SUBMIT): _S.AWAITING_CONFIRMATION,
    (_S.UNFINISHED, _A.SUBMIT): _S.AWAITING_CONFIRMATION,
    # Only while the pending submission is flagged unfinished (checked in submit_result)
    (_S.AWAITING_CONFIRMATION, _A.SUBMIT): _S.AWAITING_CONFIRMATION,
    (_S.AWAITING_CONFIRMATION, _A.CONFIRM): _S.COMPLETED,
    (_S.AWAITING_CONFIRMATION, _A.DISPUTE): _S.DISPUTED,
    (_S.AWAITING_CONFIRMATION, _A.AUTO_APPROVE): _S.COMPLETED,
    (_S.SCHEDULED, _A.CANCEL): _S.CANCELLED,
    (_S.SCHEDULED, _A.WALKOVER): _S.COMPLETED,
    (_S.UNFINISHED, _A.WALKOVER): _S.COMPLETED,
    (_S.AWAITING_CONFIRMATION, _A.WALKOVER): _S.COMPLETED,
    (_S.DISPUTED, _A.WALKOVER): _S.COMPLETED,
    (_S.SCHEDULED, _A.VOID): _S.VOID,
    (_S.UNFINISHED, _A.VOID): _S.VOID,
    (_S.AWAITING_CONFIRMATION, _A.VOID): _S.VOID,
    (_S.DISPUTED, _A.VOID): _S.VOID,
    (_S.DRAFT, _A.VOID): _S.VOID,
}

# Stored representation of each state: (status, is_disputed)
STATE_STORAGE = {
    _S.SCHEDULED: (MatchStatus.SCHEDULED, False),
    _S.AWAITING_CONFIRMATION: (MatchStatus.ONGOING, False),
    _S.DISPUTED: (MatchStatus.ONGOING, True),
    _S.UNFINISHED: (MatchStatus.UNFINISHED, False),
    _S.COMPLETED: (MatchStatus.COMPLETED, False),
    _S.CANCELLED: (MatchStatus.CANCELLED, False),
    _S.VOID: (MatchStatus.VOID, False),
    _S.DRAFT: (MatchStatus.DRAFT, False),
}

_STATUS_STATES = {
    MatchStatus.SCHEDULED: _S.SCHEDULED,
    MatchStatus.UNFINISHED: _S.UNFINISHED,
    MatchStatus.COMPLETED: _S.COMPLETED,
    MatchStatus.CANCELLED: _S.CANCELLED,
    MatchStatus.VOID: _S.VOID,
    MatchStatus.DRAFT: _S.DRAFT,
}

MIN_DISPUTE_REASON_LENGTH = 20
MAX_EVIDENCE_URLS = 3


def workflow_state(match: Match) -> WorkflowState:
    status = canonical_status(match.status)
    if status is None:
        raise InvalidState(f"Match {match.id} has unknown status '{match.status}'", code="UNKNOWN_STATUS")
    if status == MatchStatus.ONGOING:
        return _S.DISPUTED if match.is_disputed else _S.AWAITING_CONFIRMATION
    return _STATUS_STATES[status]


def require_transition(state: WorkflowState, action: WorkflowAction) -> WorkflowState:
    target = TRANSITIONS.get((state, action))
    if target is None:
        raise InvalidState(f"Cannot {action.value} a match in state {state.value}")
    return target


def storage_for(state: WorkflowState) -> Dict[str, Any]:
    status, disputed = STATE_STORAGE[state]
    return {"status": status.value, "is_disputed": disputed}


# ── Input validation ─────────────────────────────────────────────────────

@dataclass
class DisputeDetails:
    category: str
    reason: str
    disputer_team1_score: Optional[int] = None
    disputer_team2_score: Optional[int] = None
    evidence_urls: Optional[List[str]] = None


def _require_score(value, field: str) -> int:
    if value is None:
        raise ValidationError(f"{field} is required", code="MISSING_SCORE")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", code="INVALID_SCORE")
    if value < 0:
        raise ValidationError(f"{field} cannot be negative", code="INVALID_SCORE")
    return value


def validate_set_scores(set_scores: Optional[List[Dict[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
    if set_scores is None:
        return None
    cleaned = []
    for index, entry in enumerate(set_scores, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(f"Set {index} must be an object", code="INVALID_SET_SCORE")
        row = {"set_number": entry.get("set_number") or index}
        for key in ("team1_games", "team2_games"):
            row[key] = _require_score(entry.get(key), f"set {index} {key}")
        for key in ("team1_tiebreak", "team2_tiebreak"):
            if entry.get(key) is not None:
                row[key] = _require_score(entry.get(key), f"set {index} {key}")
        cleaned.append(row)
    return cleaned


def validate_dispute(details: Optional[DisputeDetails]) -> Optional[DisputeDetails]:
    if details is None:
        return None
    try:
        category = DisputeCategory((details.category or "").upper())
    except ValueError:
        raise ValidationError(f"Unknown dispute category '{details.category}'", code="INVALID_DISPUTE_CATEGORY")
    reason = (details.reason or "").strip()
    if len(reason) < MIN_DISPUTE_REASON_LENGTH:
        raise ValidationError(
            f"Dispute reason must be at least {MIN_DISPUTE_REASON_LENGTH} characters",
            code="DISPUTE_REASON_TOO_SHORT",
        )
    urls = [u for u in (details.evidence_urls or []) if u]
    if len(urls) > MAX_EVIDENCE_URLS:
        raise ValidationError(f"At most {MAX_EVIDENCE_URLS} evidence files allowed", code="TOO_MANY_EVIDENCE_URLS")
    t1, t2 = details.disputer_team1_score, details.disputer_team2_score
    if (t1 is None) != (t2 is None):
        raise ValidationError("Both disputed scores are required together", code="INVALID_SCORE")
    if t1 is not None:
        _require_score(t1, "disputer_team1_score")
        _require_score(t2, "disputer_team2_score")
    return DisputeDetails(
        category=category.value,
        reason=reason,
        disputer_team1_score=t1,
        disputer_team2_score=t2,
        evidence_urls=urls or None,
    )


# ── Commit helper ────────────────────────────────────────────────────────

def _check_idempotency_key(store: MatchStore, match_id: int, idempotency_key: Optional[str]) -> None:
    if store.action_logged(match_id, idempotency_key):
        raise AlreadyProcessed(f"Request {idempotency_key} was already applied to match {match_id}")


def commit_transition(
    store: MatchStore,
    match: Match,
    action: str,
    actor_id: Optional[str],
    changes: Dict[str, Any],
    now: datetime,
    idempotency_key: Optional[str] = None,
    extra_rows: Optional[List[Any]] = None,
    publisher: Optional[MatchEventPublisher] = None,
    event: str = MATCH_UPDATED,
    event_payload: Optional[Dict[str, Any]] = None,
) -> Match:
    """Apply one transition atomically; see module docstring."""
    session = store.session
    from_status = match.status
    read_version = match.version
    changes = dict(changes)
    changes.setdefault("updated_at", now)

    if not store.compare_and_swap(match, changes):
        session.rollback()
        logger.warning(f"Match {match.id}: {action} lost a race (version {read_version} is stale)")
        raise InvalidState(
            f"Match {match.id} was modified by another request; re-fetch and retry",
            code="CONCURRENT_UPDATE",
        )

    for row in extra_rows or []:
        session.add(row)
    store.log_action(
        match.id,
        action,
        actor_id,
        from_status=from_status,
        to_status=changes.get("status", from_status),
        now=now,
        idempotency_key=idempotency_key,
    )
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise AlreadyProcessed(f"Request {idempotency_key} was already applied to match {match.id}")

    session.refresh(match)
    logger.info(f"Match {match.id}: {action} by {actor_id or 'system'} ({from_status} -> {match.status})")

    payload = {"action": action, "status": match.status, "version": match.version}
    payload.update(event_payload or {})
    (publisher or get_event_publisher()).publish(event, match.id, payload)
    return match


# ── Operations ───────────────────────────────────────────────────────────

def submit_result(
    session: Session,
    match_id: int,
    actor_id: str,
    team1_score: Optional[int],
    team2_score: Optional[int],
    now: datetime,
    set_scores: Optional[List[Dict[str, Any]]] = None,
    comment: Optional[str] = None,
    is_unfinished: bool = False,
    is_casual_play: bool = False,
    idempotency_key: Optional[str] = None,
    publisher: Optional[MatchEventPublisher] = None,
) -> Match:
    """Record a score; the match then awaits the other side's confirmation."""
    store = MatchStore(session)
    match = store.get_match(match_id, for_update=True)
    _check_idempotency_key(store, match_id, idempotency_key)

    team1_score = _require_score(team1_score, "team1_score")
    team2_score = _require_score(team2_score, "team2_score")
    cleaned_sets = validate_set_scores(set_scores)
    if is_casual_play and not match.is_friendly:
        raise ValidationError("Casual play can only be recorded on friendly matches", code="CASUAL_PLAY_NOT_FRIENDLY")

    state = workflow_state(match)
    same_submission = (
        match.result_submitted_by_id == actor_id
        and match.team1_score == team1_score
        and match.team2_score == team2_score
        and bool(match.result_is_unfinished) == bool(is_unfinished)
    )
    if state in (_S.AWAITING_CONFIRMATION, _S.COMPLETED) and same_submission:
        raise AlreadyProcessed(f"Match {match_id} already has this result")
    if state == _S.DISPUTED:
        raise InvalidState(f"Match {match_id} has an open dispute", code="RESULT_DISPUTED")
    if state == _S.AWAITING_CONFIRMATION and not match.result_is_unfinished:
        raise InvalidState(f"Match {match_id} already has a pending result", code="RESULT_ALREADY_PENDING")
    target = require_transition(state, _A.SUBMIT)

    participants = store.participants(match_id)
    partnership = store.actor_partnership(match, participants, actor_id)
    roles = resolve_roles(match, participants, partnership, actor_id)
    if not roles.is_participant:
        raise NotAuthorized(f"User {actor_id} is not a participant of match {match_id}")

    slots = slot_state(match, participants)
    if not slots.all_filled:
        raise PreconditionFailed(
            f"Match {match_id} has {slots.filled} of {slots.required} players", code="SLOTS_NOT_FILLED"
        )
    if not slots.all_accepted:
        raise PreconditionFailed(f"Match {match_id} has pending invitations", code="INVITATIONS_PENDING")
    if state == _S.SCHEDULED and not is_match_time_reached(match, now):
        raise PreconditionFailed(f"Match {match_id} has not started yet", code="MATCH_TIME_NOT_REACHED")

    changes = storage_for(target)
    changes.update(
        team1_score=team1_score,
        team2_score=team2_score,
        set_scores=cleaned_sets,
        result_comment=(comment or "").strip() or None,
        result_submitted_by_id=actor_id,
        result_submitted_at=now,
        result_is_unfinished=bool(is_unfinished),
        result_is_casual_play=bool(is_casual_play),
    )
    return commit_transition(
        store, match, _A.SUBMIT.value, actor_id, changes, now, idempotency_key, publisher=publisher
    )


def review_result(
    session: Session,
    match_id: int,
    actor_id: str,
    decision: str,
    now: datetime,
    dispute: Optional[DisputeDetails] = None,
    idempotency_key: Optional[str] = None,
    publisher: Optional[MatchEventPublisher] = None,
) -> Match:
    """Opposing side confirms or disputes the pending result."""
    try:
        decision = ReviewDecision((decision or "").lower())
    except ValueError:
        raise ValidationError(f"Unknown review decision '{decision}'", code="INVALID_DECISION")

    store = MatchStore(session)
    match = store.get_match(match_id, for_update=True)
    _check_idempotency_key(store, match_id, idempotency_key)
    details = validate_dispute(dispute) if decision == ReviewDecision.DISPUTE else None

    state = workflow_state(match)
    if decision == ReviewDecision.CONFIRM and state == _S.COMPLETED:
        raise AlreadyProcessed(f"Result for match {match_id} has already been completed")
    if decision == ReviewDecision.DISPUTE and state == _S.DISPUTED:
        raise AlreadyProcessed(f"Result for match {match_id} is already disputed")
    action = _A.CONFIRM if decision == ReviewDecision.CONFIRM else _A.DISPUTE
    target = require_transition(state, action)

    participants = store.participants(match_id)
    partnership = store.actor_partnership(match, participants, actor_id)
    roles = resolve_roles(match, participants, partnership, actor_id)
    if not roles.can_review_result:
        raise NotAuthorized(f"User {actor_id} cannot review the result of match {match_id}")

    changes = storage_for(target)
    extra_rows = []
    if action == _A.CONFIRM:
        changes["completed_at"] = now
    elif details is not None:
        extra_rows.append(
            MatchDispute(
                match_id=match_id,
                disputed_by_id=actor_id,
                category=details.category,
                reason=details.reason,
                disputer_team1_score=details.disputer_team1_score,
                disputer_team2_score=details.disputer_team2_score,
                evidence_urls=details.evidence_urls,
                created_at=now,
            )
        )
    return commit_transition(
        store,
        match,
        action.value,
        actor_id,
        changes,
        now,
        idempotency_key,
        extra_rows=extra_rows,
        publisher=publisher,
    )


def auto_approve(
    session: Session,
    match_id: int,
    now: datetime,
    publisher: Optional[MatchEventPublisher] = None,
) -> Match:
    """
    System-initiated approval after 24h without review.

    Safe to call redundantly from several workers: when the match is not
    due, already completed, or another worker wins the race, this returns
    the current state without changing it.
    """
    store = MatchStore(session)
    match = store.get_match(match_id, for_update=True)
    if not is_auto_approval_due(match, now):
        return match
    target = require_transition(workflow_state(match), _A.AUTO_APPROVE)

    changes = storage_for(target)
    changes.update(completed_at=now, auto_approved=True)
    try:
        return commit_transition(store, match, _A.AUTO_APPROVE.value, None, changes, now, publisher=publisher)
    except InvalidState:
        session.expire_all()
        logger.info(f"Match {match_id}: auto-approval already applied by another worker")
        return store.get_match(match_id)


def cancel_match(
    session: Session,
    match_id: int,
    actor_id: str,
    reason: str,
    now: datetime,
    comment: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    publisher: Optional[MatchEventPublisher] = None,
) -> Match:
    try:
        reason = CancellationReason((reason or "").upper())
    except ValueError:
        raise ValidationError(f"Unknown cancellation reason '{reason}'", code="INVALID_CANCELLATION_REASON")

    store = MatchStore(session)
    match = store.get_match(match_id, for_update=True)
    _check_idempotency_key(store, match_id, idempotency_key)

    state = workflow_state(match)
    if state == _S.CANCELLED:
        raise AlreadyProcessed(f"Match {match_id} is already cancelled")
    target = require_transition(state, _A.CANCEL)

    participants = store.participants(match_id)
    roles = resolve_roles(match, participants, None, actor_id)
    if not (roles.is_participant or roles.is_creator):
        raise NotAuthorized(f"User {actor_id} cannot cancel match {match_id}")
    if not can_cancel(match, participants, actor_id, now):
        raise PreconditionFailed(
            f"Match {match_id} has started; record a result or walkover instead", code="MATCH_STARTED"
        )

    changes = storage_for(target)
    changes.update(
        cancellation_reason=reason.value,
        cancellation_comment=(comment or "").strip() or None,
        cancelled_by_id=actor_id,
        cancelled_at=now,
        is_late_cancellation=is_late_cancellation(match, now),
    )
    return commit_transition(
        store, match, _A.CANCEL.value, actor_id, changes, now, idempotency_key, publisher=publisher
    )


def void_match(
    session: Session,
    match_id: int,
    now: datetime,
    reason: Optional[str] = None,
    admin_id: Optional[str] = None,
    publisher: Optional[MatchEventPublisher] = None,
) -> Match:
    """Administrative override: any non-terminal match becomes VOID."""
    store = MatchStore(session)
    match = store.get_match(match_id, for_update=True)
    state = workflow_state(match)
    if state == _S.VOID:
        raise AlreadyProcessed(f"Match {match_id} is already void")
    target = require_transition(state, _A.VOID)

    changes = storage_for(target)
    changes.update(void_reason=(reason or "").strip() or None, voided_at=now)
    return commit_transition(store, match, _A.VOID.value, admin_id, changes, now, publisher=publisher)


# ── Participation ────────────────────────────────────────────────────────

def _pick_team(open_by_team: Dict[str, int], needed: int, preferred: Optional[str]) -> Optional[str]:
    if preferred in (TEAM1, TEAM2) and open_by_team.get(preferred, 0) >= needed:
        return preferred
    for team in (TEAM1, TEAM2):
        if open_by_team.get(team, 0) >= needed:
            return team
    return None


def join_match(
    session: Session,
    match_id: int,
    actor_id: str,
    now: datetime,
    partner_id: Optional[str] = None,
    team: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    publisher: Optional[MatchEventPublisher] = None,
) -> List[MatchParticipant]:
    """
    Join an open match.

    Singles: one open slot. League doubles: the actor joins together with
    their active partner. Friendly doubles: the actor may join alone, or
    with a named partner.
    """
    store = MatchStore(session)
    match = store.get_match(match_id, for_update=True)
    _check_idempotency_key(store, match_id, idempotency_key)

    if canonical_status(match.status) != MatchStatus.SCHEDULED:
        raise InvalidState(f"Match {match_id} is not open for joining")
    participants = store.participants(match_id)
    existing = find_participant(participants, actor_id)
    if existing is not None and (existing.invitation_status or "").upper() != INVITE_DECLINED:
        raise AlreadyProcessed(f"User {actor_id} already joined match {match_id}")
    if is_match_time_reached(match, now):
        raise PreconditionFailed(f"Match {match_id} start time has passed", code="MATCH_TIME_PASSED")
    slots = slot_state(match, participants)
    if slots.all_filled:
        raise PreconditionFailed(f"Match {match_id} is full", code="MATCH_FULL")

    joiners = [(actor_id, "PLAYER")]
    if is_doubles(match):
        partnership = store.active_partnership(actor_id, match.season_id)
        if partnership is not None:
            other = partnership.partner_id if partnership.captain_id == actor_id else partnership.captain_id
            if partner_id and partner_id != other:
                raise ValidationError(f"User {partner_id} is not your active partner", code="PARTNER_MISMATCH")
            partner_id = other
            own_role = "CAPTAIN" if partnership.captain_id == actor_id else "PARTNER"
        elif not match.is_friendly:
            raise NotAuthorized("Doubles league matches require an active partnership", code="NO_ACTIVE_PARTNERSHIP")
        else:
            own_role = "CAPTAIN" if partner_id else "PLAYER"
        if partner_id:
            partner = find_participant(participants, partner_id)
            if partner is not None and (partner.invitation_status or "").upper() != INVITE_DECLINED:
                raise PreconditionFailed(f"User {partner_id} is already in this match", code="PARTNER_ALREADY_JOINED")
            joiners = [(actor_id, own_role), (partner_id, "PARTNER" if own_role == "CAPTAIN" else "CAPTAIN")]

    chosen = _pick_team(slots.open_by_team, len(joiners), team)
    if chosen is None:
        raise PreconditionFailed(f"No side of match {match_id} has {len(joiners)} open slot(s)", code="MATCH_FULL")

    # Serialize with other writers before inserting rows
    if not store.bump_version(match, now):
        session.rollback()
        raise InvalidState(
            f"Match {match_id} was modified by another request; re-fetch and retry", code="CONCURRENT_UPDATE"
        )
    for user_id, role in joiners:
        previous = find_participant(participants, user_id)
        if previous is not None:
            # Re-joining after a declined invitation reuses the row
            previous.team = chosen
            previous.invitation_status = INVITE_ACCEPTED
            previous.role = role
            previous.joined_at = now
            session.add(previous)
        else:
            store.add_participant(
                MatchParticipant(
                    match_id=match_id,
                    user_id=user_id,
                    team=chosen,
                    invitation_status=INVITE_ACCEPTED,
                    role=role,
                    joined_at=now,
                )
            )
    store.log_action(match_id, "join", actor_id, match.status, match.status, now, idempotency_key)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise AlreadyProcessed(f"Join request for match {match_id} was already applied")

    joined_ids = [user_id for user_id, _ in joiners]
    logger.info(f"Match {match_id}: {joined_ids} joined {chosen}")
    (publisher or get_event_publisher()).publish(
        MATCH_PARTICIPANT_JOINED, match_id, {"user_ids": joined_ids, "team": chosen}
    )
    return store.participants(match_id)


def respond_to_invitation(
    session: Session,
    match_id: int,
    actor_id: str,
    accept: bool,
    now: datetime,
    publisher: Optional[MatchEventPublisher] = None,
) -> List[MatchParticipant]:
    store = MatchStore(session)
    match = store.get_match(match_id, for_update=True)
    participants = store.participants(match_id)
    me = find_participant(participants, actor_id)
    if me is None:
        raise NotAuthorized(f"User {actor_id} has no invitation to match {match_id}")

    target = INVITE_ACCEPTED if accept else INVITE_DECLINED
    current = (me.invitation_status or "").upper()
    if current == target:
        raise AlreadyProcessed(f"Invitation already {target.lower()}")
    if current != INVITE_PENDING:
        raise InvalidState(f"Invitation is {current.lower()}, not pending")
    if canonical_status(match.status) != MatchStatus.SCHEDULED:
        raise InvalidState(f"Match {match_id} is no longer scheduled")

    if not store.bump_version(match, now):
        session.rollback()
        raise InvalidState(
            f"Match {match_id} was modified by another request; re-fetch and retry", code="CONCURRENT_UPDATE"
        )
    me.invitation_status = target
    session.add(me)
    action = "accept_invite" if accept else "decline_invite"
    store.log_action(match_id, action, actor_id, match.status, match.status, now)
    session.commit()

    logger.info(f"Match {match_id}: {actor_id} {action}")
    (publisher or get_event_publisher()).publish(MATCH_UPDATED, match_id, {"action": action, "user_id": actor_id})
    return store.participants(match_id)
