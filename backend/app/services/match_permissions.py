"""
Actions available to one actor on one match.

The decision is an ordered rule table evaluated first-match-wins. Each row
is a named predicate over a precomputed ``PermissionContext`` so every
branch can be exercised on its own.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Sequence

from app.models.match import Match
from app.models.match_participant import MatchParticipant
from app.services.cancellation_guard import can_cancel
from app.services.match_roles import (
    INVITE_PENDING,
    MatchRoles,
    SlotState,
    as_partnership_view,
    is_doubles,
    resolve_roles,
    slot_state,
)
from app.services.match_status import MatchStatus, canonical_status, is_match_time_reached


class Action(str, Enum):
    JOIN = "JOIN"
    ACCEPT_INVITE = "ACCEPT_INVITE"
    SUBMIT_RESULT = "SUBMIT_RESULT"
    REVIEW_RESULT = "REVIEW_RESULT"
    CONFIRM_RESULT = "CONFIRM_RESULT"
    DISPUTE_RESULT = "DISPUTE_RESULT"
    CONTINUE_UNFINISHED = "CONTINUE_UNFINISHED"
    CANCEL = "CANCEL"
    REQUEST_WALKOVER = "REQUEST_WALKOVER"
    VIEW_ONLY = "VIEW_ONLY"


@dataclass(frozen=True)
class PermissionContext:
    match: Match
    status: Optional[MatchStatus]
    roles: MatchRoles
    slots: SlotState
    time_reached: bool
    cancel_allowed: bool
    has_active_partnership: bool

    @property
    def can_start(self) -> bool:
        return self.slots.all_filled and self.slots.all_accepted and self.time_reached


@dataclass(frozen=True)
class PermissionDecision:
    actions: FrozenSet[Action]
    hint: str
    rule: str

    def allows(self, action: Action) -> bool:
        return action in self.actions


@dataclass(frozen=True)
class _Rule:
    name: str
    applies: Callable[[PermissionContext], bool]
    decide: Callable[[PermissionContext], PermissionDecision]


def _fixed(name: str, actions, hint: str):
    decision = PermissionDecision(frozenset(actions), hint, name)
    return lambda ctx: decision


def _has_partnership(partnership) -> bool:
    if partnership is None:
        return False
    status = getattr(partnership, "status", "ACTIVE")
    return (status or "ACTIVE").upper() == "ACTIVE"


def can_join(ctx: PermissionContext) -> bool:
    """Singles always; doubles needs a friendly match or an active partnership."""
    if ctx.status != MatchStatus.SCHEDULED or ctx.roles.is_participant:
        return False
    if ctx.slots.all_filled or ctx.time_reached:
        return False
    if is_doubles(ctx.match):
        return bool(ctx.match.is_friendly) or ctx.has_active_partnership
    return True


def _join_decision(ctx: PermissionContext) -> PermissionDecision:
    if can_join(ctx):
        return PermissionDecision(frozenset({Action.JOIN}), "join", "join")
    if ctx.slots.all_filled:
        hint = "match_full"
    elif ctx.time_reached:
        hint = "time_passed"
    else:
        hint = "not_eligible"
    return PermissionDecision(frozenset({Action.VIEW_ONLY}), hint, "join")


def _is(status: MatchStatus):
    return lambda ctx: ctx.status == status


RULES: List[_Rule] = [
    _Rule(
        "pending_invite",
        lambda ctx: ctx.roles.invitation_status == INVITE_PENDING,
        _fixed("pending_invite", {Action.ACCEPT_INVITE}, "accept_invite"),
    ),
    _Rule(
        "continue_unfinished",
        lambda ctx: ctx.status == MatchStatus.UNFINISHED and ctx.roles.is_participant,
        _fixed("continue_unfinished", {Action.CONTINUE_UNFINISHED}, "continue_unfinished"),
    ),
    _Rule(
        "completed",
        _is(MatchStatus.COMPLETED),
        _fixed("completed", {Action.VIEW_ONLY}, "completed"),
    ),
    _Rule(
        "disputed",
        lambda ctx: ctx.status == MatchStatus.ONGOING and bool(ctx.match.is_disputed),
        _fixed("disputed", {Action.VIEW_ONLY}, "disputed"),
    ),
    _Rule(
        "review_result",
        lambda ctx: ctx.status == MatchStatus.ONGOING and ctx.roles.can_review_result,
        _fixed("review_result", {Action.REVIEW_RESULT}, "review_result"),
    ),
    _Rule(
        "awaiting_confirmation",
        lambda ctx: ctx.status == MatchStatus.ONGOING and ctx.roles.is_result_submitter,
        _fixed("awaiting_confirmation", {Action.VIEW_ONLY}, "awaiting_confirmation"),
    ),
    _Rule(
        "submit_result",
        lambda ctx: ctx.status == MatchStatus.SCHEDULED and ctx.can_start and ctx.roles.is_participant,
        _fixed("submit_result", {Action.SUBMIT_RESULT, Action.REQUEST_WALKOVER}, "submit_result"),
    ),
    _Rule(
        "cancel",
        lambda ctx: ctx.cancel_allowed,
        _fixed("cancel", {Action.CANCEL}, "cancel"),
    ),
    _Rule(
        "waiting_for_confirmations",
        lambda ctx: ctx.roles.is_participant
        and ctx.status == MatchStatus.SCHEDULED
        and ctx.slots.all_filled
        and not ctx.slots.all_accepted,
        _fixed("waiting_for_confirmations", {Action.VIEW_ONLY}, "waiting_for_confirmations"),
    ),
    _Rule(
        "waiting_for_opponent",
        lambda ctx: ctx.roles.is_participant
        and ctx.status == MatchStatus.SCHEDULED
        and not ctx.slots.all_filled
        and not ctx.time_reached,
        _fixed("waiting_for_opponent", {Action.VIEW_ONLY}, "waiting_for_opponent"),
    ),
    _Rule(
        "join",
        lambda ctx: not ctx.roles.is_participant,
        _join_decision,
    ),
]

_FALLBACK = PermissionDecision(frozenset({Action.VIEW_ONLY}), "view_only", "fallback")


def build_context(
    match: Match,
    participants: Sequence[MatchParticipant],
    partnership,
    actor_id: Optional[str],
    now: datetime,
) -> PermissionContext:
    return PermissionContext(
        match=match,
        status=canonical_status(match.status),
        roles=resolve_roles(match, participants, as_partnership_view(partnership), actor_id),
        slots=slot_state(match, participants),
        time_reached=is_match_time_reached(match, now),
        cancel_allowed=can_cancel(match, participants, actor_id, now),
        has_active_partnership=_has_partnership(partnership),
    )


def decide(ctx: PermissionContext) -> PermissionDecision:
    for rule in RULES:
        if rule.applies(ctx):
            return rule.decide(ctx)
    return _FALLBACK


def permission_decision(
    match: Match,
    participants: Sequence[MatchParticipant],
    partnership,
    actor_id: Optional[str],
    now: datetime,
) -> PermissionDecision:
    return decide(build_context(match, participants, partnership, actor_id, now))


def available_actions(
    match: Match,
    participants: Sequence[MatchParticipant],
    partnership,
    actor_id: Optional[str],
    now: datetime,
) -> FrozenSet[Action]:
    return permission_decision(match, participants, partnership, actor_id, now).actions
