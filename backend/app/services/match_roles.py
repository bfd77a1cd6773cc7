"""
Actor roles relative to a match.

Partnerships decide which side an actor is on in doubles: the submitter's
teammate counts as submitter-side, and only captains adjudicate a result on
behalf of their pair.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from app.models.match import Match
from app.models.match_participant import MatchParticipant
from app.models.partnership import Partnership

SINGLES = "SINGLES"
DOUBLES = "DOUBLES"

TEAM1 = "team1"
TEAM2 = "team2"
UNASSIGNED = "unassigned"

INVITE_PENDING = "PENDING"
INVITE_ACCEPTED = "ACCEPTED"
INVITE_DECLINED = "DECLINED"

SLOTS_PER_TEAM = {SINGLES: 1, DOUBLES: 2}


@dataclass(frozen=True)
class PartnershipView:
    """Captain/partner pair, either stored or derived from team assignment."""

    captain_id: Optional[str]
    partner_id: Optional[str]

    def members(self) -> List[str]:
        return [m for m in (self.captain_id, self.partner_id) if m]


@dataclass(frozen=True)
class SlotState:
    required: int
    filled: int
    all_accepted: bool
    open_by_team: Dict[str, int]

    @property
    def all_filled(self) -> bool:
        return self.filled >= self.required

    @property
    def open_slots(self) -> int:
        return max(0, self.required - self.filled)


@dataclass(frozen=True)
class MatchRoles:
    actor_id: Optional[str]
    is_participant: bool
    is_creator: bool
    is_captain: bool
    is_partner: bool
    is_result_submitter: bool
    can_review_result: bool
    invitation_status: Optional[str]


def is_doubles(match: Match) -> bool:
    return (match.match_type or SINGLES).upper() == DOUBLES


def required_slots(match: Match) -> int:
    return 4 if is_doubles(match) else 2


def active_participants(participants: Sequence[MatchParticipant]) -> List[MatchParticipant]:
    """Participants occupying a slot. Declined invitations free their slot."""
    return [p for p in participants if (p.invitation_status or "").upper() != INVITE_DECLINED]


def slot_state(match: Match, participants: Sequence[MatchParticipant]) -> SlotState:
    active = active_participants(participants)
    per_team = SLOTS_PER_TEAM[DOUBLES if is_doubles(match) else SINGLES]
    open_by_team = {
        team: max(0, per_team - sum(1 for p in active if p.team == team)) for team in (TEAM1, TEAM2)
    }
    all_accepted = bool(active) and all(
        (p.invitation_status or "").upper() == INVITE_ACCEPTED for p in active
    )
    return SlotState(
        required=required_slots(match),
        filled=len(active),
        all_accepted=all_accepted,
        open_by_team=open_by_team,
    )


def find_participant(participants: Sequence[MatchParticipant], user_id: Optional[str]) -> Optional[MatchParticipant]:
    if not user_id:
        return None
    for p in participants:
        if p.user_id == user_id:
            return p
    return None


def as_partnership_view(partnership) -> Optional[PartnershipView]:
    if partnership is None:
        return None
    if isinstance(partnership, PartnershipView):
        return partnership
    if isinstance(partnership, Partnership):
        return PartnershipView(captain_id=partnership.captain_id, partner_id=partnership.partner_id)
    if isinstance(partnership, dict):
        return PartnershipView(captain_id=partnership.get("captain_id"), partner_id=partnership.get("partner_id"))
    return PartnershipView(
        captain_id=getattr(partnership, "captain_id", None),
        partner_id=getattr(partnership, "partner_id", None),
    )


def team_partnership(
    participants: Sequence[MatchParticipant], user_id: Optional[str], created_by_id: Optional[str] = None
) -> Optional[PartnershipView]:
    """
    Derive a captain/partner pair from team assignment.

    Used for doubles matches with no stored partnership (friendly play).
    Captain is the teammate with role CAPTAIN, then the creator, then
    whoever joined first.
    """
    me = find_participant(active_participants(participants), user_id)
    if me is None or me.team not in (TEAM1, TEAM2):
        return None
    team = [p for p in active_participants(participants) if p.team == me.team]
    if len(team) < 2:
        return PartnershipView(captain_id=me.user_id, partner_id=None)

    def captain_rank(p: MatchParticipant):
        role = (p.role or "").upper()
        if role == "CAPTAIN":
            return (0, p.joined_at)
        if p.user_id == created_by_id or role == "CREATOR":
            return (1, p.joined_at)
        return (2, p.joined_at)

    ordered = sorted(team, key=captain_rank)
    return PartnershipView(captain_id=ordered[0].user_id, partner_id=ordered[1].user_id)


def side_of(participants: Sequence[MatchParticipant], user_id: Optional[str]) -> Optional[str]:
    p = find_participant(participants, user_id)
    if p is None or p.team not in (TEAM1, TEAM2):
        return None
    return p.team


def resolve_roles(
    match: Match,
    participants: Sequence[MatchParticipant],
    partnership,
    actor_id: Optional[str],
) -> MatchRoles:
    """Compute the actor's relationship to the match.

    ``partnership`` is the actor's own partnership (captain/partner) for
    doubles, or None.
    """
    pair = as_partnership_view(partnership)
    me = find_participant(participants, actor_id)
    is_participant = me is not None and (me.invitation_status or "").upper() != INVITE_DECLINED
    is_creator = actor_id is not None and actor_id == match.created_by_id
    submitter = match.result_submitted_by_id

    if is_doubles(match):
        is_captain = pair is not None and actor_id is not None and actor_id == pair.captain_id
        is_partner = pair is not None and actor_id is not None and actor_id == pair.partner_id
        is_result_submitter = bool(submitter) and pair is not None and submitter in pair.members()
        can_review = is_participant and bool(submitter) and is_captain and not is_result_submitter
    else:
        is_captain = False
        is_partner = False
        is_result_submitter = bool(submitter) and submitter == actor_id
        can_review = is_participant and bool(submitter) and submitter != actor_id

    return MatchRoles(
        actor_id=actor_id,
        is_participant=is_participant,
        is_creator=is_creator,
        is_captain=is_captain,
        is_partner=is_partner,
        is_result_submitter=is_result_submitter,
        can_review_result=can_review,
        invitation_status=(me.invitation_status or "").upper() if me else None,
    )
