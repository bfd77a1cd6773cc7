"""
Match result adjudication endpoints.

Thin layer over the result workflow: every handler reads ``now`` from the
clock dependency, calls one service operation and maps workflow errors to
HTTP status codes. Actor identity is passed explicitly (no auth layer here).
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.database import get_session
from app.models.match import Match
from app.models.match_participant import MatchParticipant
from app.services.auto_approval_sweep import evaluate_auto_approval, sweep_auto_approvals
from app.services.match_events import MatchEventPublisher, get_event_publisher
from app.services.match_state import get_match_state
from app.services.result_workflow import (
    DisputeDetails,
    cancel_match,
    join_match,
    respond_to_invitation,
    review_result,
    submit_result,
    void_match,
)
from app.services.walkover import format_walkover_reason, record_walkover
from app.services.workflow_errors import (
    InvalidState,
    MatchNotFound,
    NotAuthorized,
    PreconditionFailed,
    ValidationError,
    WorkflowError,
)
from app.utils.clock import get_clock

router = APIRouter()

_ERROR_STATUS = (
    (MatchNotFound, 404),
    (NotAuthorized, 403),
    (InvalidState, 409),
    (PreconditionFailed, 400),
    (ValidationError, 422),
)


def _http_error(exc: WorkflowError) -> HTTPException:
    for cls, status_code in _ERROR_STATUS:
        if isinstance(exc, cls):
            return HTTPException(status_code=status_code, detail=exc.detail)
    return HTTPException(status_code=400, detail=exc.detail)


# ============================================================================
# Request / response models
# ============================================================================


class SetScore(BaseModel):
    set_number: Optional[int] = None
    team1_games: Optional[int] = None
    team2_games: Optional[int] = None
    team1_tiebreak: Optional[int] = None
    team2_tiebreak: Optional[int] = None


class JoinRequest(BaseModel):
    actor_id: str
    partner_id: Optional[str] = None
    team: Optional[str] = None
    idempotency_key: Optional[str] = None


class InvitationResponseRequest(BaseModel):
    actor_id: str
    accept: bool


class SubmitResultRequest(BaseModel):
    actor_id: str
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    set_scores: Optional[List[SetScore]] = None
    comment: Optional[str] = None
    is_unfinished: bool = False
    is_casual_play: bool = False
    idempotency_key: Optional[str] = None


class DisputeRequest(BaseModel):
    category: str
    reason: str
    disputer_team1_score: Optional[int] = None
    disputer_team2_score: Optional[int] = None
    evidence_urls: Optional[List[str]] = None


class ReviewRequest(BaseModel):
    actor_id: str
    decision: str  # "confirm" | "dispute"
    dispute: Optional[DisputeRequest] = None
    idempotency_key: Optional[str] = None


class WalkoverRequest(BaseModel):
    actor_id: str
    defaulting_user_id: str
    reason: str
    reason_detail: Optional[str] = None
    idempotency_key: Optional[str] = None


class CancelRequest(BaseModel):
    actor_id: str
    reason: str
    comment: Optional[str] = None
    idempotency_key: Optional[str] = None


class VoidRequest(BaseModel):
    admin_id: Optional[str] = None
    reason: Optional[str] = None


class WalkoverInfo(BaseModel):
    reason: Optional[str] = None
    reason_label: str
    defaulting_player_id: Optional[str] = None
    winning_player_id: Optional[str] = None
    reason_detail: Optional[str] = None


class MatchOut(BaseModel):
    id: int
    match_type: str
    status: str
    created_by_id: Optional[str] = None
    season_id: Optional[str] = None
    is_friendly: bool
    match_date: Optional[datetime] = None
    date: Optional[str] = None
    time: Optional[str] = None
    team1_score: Optional[int] = None
    team2_score: Optional[int] = None
    set_scores: Optional[List[Dict[str, Any]]] = None
    result_comment: Optional[str] = None
    result_submitted_by_id: Optional[str] = None
    result_submitted_at: Optional[datetime] = None
    result_is_unfinished: bool = False
    result_is_casual_play: bool = False
    is_disputed: bool = False
    auto_approved: bool = False
    completed_at: Optional[datetime] = None
    is_walkover: bool = False
    walkover: Optional[WalkoverInfo] = None
    cancellation_reason: Optional[str] = None
    is_late_cancellation: bool = False
    cancelled_at: Optional[datetime] = None
    voided_at: Optional[datetime] = None
    version: int


class ParticipantOut(BaseModel):
    user_id: str
    team: str
    invitation_status: str
    role: Optional[str] = None
    joined_at: Optional[datetime] = None
    name: Optional[str] = None
    image_url: Optional[str] = None


class PartnershipOut(BaseModel):
    captain_id: Optional[str] = None
    partner_id: Optional[str] = None


class StatusOut(BaseModel):
    status: str
    label: str
    time_phase: Optional[str] = None
    is_terminal: bool


class CountdownOut(BaseModel):
    hours: int
    minutes: int
    expired: bool


class MatchStateResponse(BaseModel):
    match: MatchOut
    participants: List[ParticipantOut]
    partnership: Optional[PartnershipOut] = None
    status: StatusOut
    available_actions: List[str]
    action_hint: str
    slots_required: int
    slots_filled: int
    countdown: Optional[CountdownOut] = None


class SweepResponse(BaseModel):
    checked: int
    approved: List[int] = Field(default_factory=list)
    failed: List[int] = Field(default_factory=list)


def _match_out(m: Match) -> MatchOut:
    walkover = None
    if m.is_walkover:
        walkover = WalkoverInfo(
            reason=m.walkover_reason,
            reason_label=format_walkover_reason(m.walkover_reason),
            defaulting_player_id=m.walkover_defaulting_player_id,
            winning_player_id=m.walkover_winning_player_id,
            reason_detail=m.walkover_reason_detail,
        )
    return MatchOut(
        id=m.id,
        match_type=m.match_type,
        status=m.status,
        created_by_id=m.created_by_id,
        season_id=m.season_id,
        is_friendly=bool(m.is_friendly),
        match_date=m.match_date,
        date=m.date,
        time=m.time,
        team1_score=m.team1_score,
        team2_score=m.team2_score,
        set_scores=m.set_scores,
        result_comment=m.result_comment,
        result_submitted_by_id=m.result_submitted_by_id,
        result_submitted_at=m.result_submitted_at,
        result_is_unfinished=bool(m.result_is_unfinished),
        result_is_casual_play=bool(m.result_is_casual_play),
        is_disputed=bool(m.is_disputed),
        auto_approved=bool(m.auto_approved),
        completed_at=m.completed_at,
        is_walkover=bool(m.is_walkover),
        walkover=walkover,
        cancellation_reason=m.cancellation_reason,
        is_late_cancellation=bool(m.is_late_cancellation),
        cancelled_at=m.cancelled_at,
        voided_at=m.voided_at,
        version=m.version,
    )


def _participant_out(p: MatchParticipant, players: Optional[Dict[str, Any]] = None) -> ParticipantOut:
    player = (players or {}).get(p.user_id)
    return ParticipantOut(
        user_id=p.user_id,
        team=p.team,
        invitation_status=p.invitation_status,
        role=p.role,
        joined_at=p.joined_at,
        name=player.name if player else None,
        image_url=player.image_url if player else None,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/matches/{match_id}", response_model=MatchStateResponse)
def get_match(
    match_id: int,
    actor_id: Optional[str] = None,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> MatchStateResponse:
    """Match, participants, partnership, resolved status and what the actor may do."""
    try:
        state = get_match_state(session, match_id, actor_id, clock.now(), publisher=publisher)
    except WorkflowError as e:
        raise _http_error(e)

    partnership = None
    if state.partnership is not None:
        partnership = PartnershipOut(
            captain_id=state.partnership.captain_id, partner_id=state.partnership.partner_id
        )
    countdown = None
    if state.countdown is not None:
        countdown = CountdownOut(
            hours=state.countdown.hours, minutes=state.countdown.minutes, expired=state.countdown.expired
        )
    return MatchStateResponse(
        match=_match_out(state.match),
        participants=[_participant_out(p, state.players) for p in state.participants],
        partnership=partnership,
        status=StatusOut(
            status=state.status.status.value,
            label=state.status.label,
            time_phase=state.status.time_phase.value if state.status.time_phase else None,
            is_terminal=state.status.is_terminal,
        ),
        available_actions=sorted(a.value for a in state.decision.actions),
        action_hint=state.decision.hint,
        slots_required=state.slots.required,
        slots_filled=state.slots.filled,
        countdown=countdown,
    )


@router.post("/matches/{match_id}/join", response_model=List[ParticipantOut])
def join(
    match_id: int,
    payload: JoinRequest,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> List[ParticipantOut]:
    try:
        participants = join_match(
            session,
            match_id,
            payload.actor_id,
            clock.now(),
            partner_id=payload.partner_id,
            team=payload.team,
            idempotency_key=payload.idempotency_key,
            publisher=publisher,
        )
    except WorkflowError as e:
        raise _http_error(e)
    return [_participant_out(p) for p in participants]


@router.post("/matches/{match_id}/invitation", response_model=List[ParticipantOut])
def respond_invitation(
    match_id: int,
    payload: InvitationResponseRequest,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> List[ParticipantOut]:
    try:
        participants = respond_to_invitation(
            session, match_id, payload.actor_id, payload.accept, clock.now(), publisher=publisher
        )
    except WorkflowError as e:
        raise _http_error(e)
    return [_participant_out(p) for p in participants]


@router.post("/matches/{match_id}/result", response_model=MatchOut)
def submit(
    match_id: int,
    payload: SubmitResultRequest,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> MatchOut:
    set_scores = None
    if payload.set_scores is not None:
        set_scores = [s.model_dump(exclude_none=True) for s in payload.set_scores]
    try:
        match = submit_result(
            session,
            match_id,
            payload.actor_id,
            payload.team1_score,
            payload.team2_score,
            clock.now(),
            set_scores=set_scores,
            comment=payload.comment,
            is_unfinished=payload.is_unfinished,
            is_casual_play=payload.is_casual_play,
            idempotency_key=payload.idempotency_key,
            publisher=publisher,
        )
    except WorkflowError as e:
        raise _http_error(e)
    return _match_out(match)


@router.post("/matches/{match_id}/review", response_model=MatchOut)
def review(
    match_id: int,
    payload: ReviewRequest,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> MatchOut:
    dispute = None
    if payload.dispute is not None:
        dispute = DisputeDetails(**payload.dispute.model_dump())
    try:
        match = review_result(
            session,
            match_id,
            payload.actor_id,
            payload.decision,
            clock.now(),
            dispute=dispute,
            idempotency_key=payload.idempotency_key,
            publisher=publisher,
        )
    except WorkflowError as e:
        raise _http_error(e)
    return _match_out(match)


@router.post("/matches/{match_id}/walkover", response_model=MatchOut)
def walkover(
    match_id: int,
    payload: WalkoverRequest,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> MatchOut:
    try:
        match = record_walkover(
            session,
            match_id,
            payload.actor_id,
            payload.defaulting_user_id,
            payload.reason,
            clock.now(),
            reason_detail=payload.reason_detail,
            idempotency_key=payload.idempotency_key,
            publisher=publisher,
        )
    except WorkflowError as e:
        raise _http_error(e)
    return _match_out(match)


@router.post("/matches/{match_id}/cancel", response_model=MatchOut)
def cancel(
    match_id: int,
    payload: CancelRequest,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> MatchOut:
    try:
        match = cancel_match(
            session,
            match_id,
            payload.actor_id,
            payload.reason,
            clock.now(),
            comment=payload.comment,
            idempotency_key=payload.idempotency_key,
            publisher=publisher,
        )
    except WorkflowError as e:
        raise _http_error(e)
    return _match_out(match)


@router.post("/matches/{match_id}/auto-approval", response_model=MatchOut)
def auto_approval(
    match_id: int,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> MatchOut:
    """System hook: approve the pending result if its 24h window has elapsed, else no-op."""
    try:
        match = evaluate_auto_approval(session, match_id, clock.now(), publisher=publisher)
    except WorkflowError as e:
        raise _http_error(e)
    return _match_out(match)


@router.post("/matches/auto-approval/sweep", response_model=SweepResponse)
def auto_approval_sweep(
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> SweepResponse:
    result = sweep_auto_approvals(session, clock.now(), publisher=publisher)
    return SweepResponse(checked=result.checked, approved=result.approved, failed=result.failed)


@router.post("/admin/matches/{match_id}/void", response_model=MatchOut)
def void(
    match_id: int,
    payload: VoidRequest,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
    publisher: MatchEventPublisher = Depends(get_event_publisher),
) -> MatchOut:
    try:
        match = void_match(
            session,
            match_id,
            clock.now(),
            reason=payload.reason,
            admin_id=payload.admin_id,
            publisher=publisher,
        )
    except WorkflowError as e:
        raise _http_error(e)
    return _match_out(match)
