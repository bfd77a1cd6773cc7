"""
MatchStore: reads and writes match, participant and partnership records.

Workflow transitions go through ``compare_and_swap`` so that two racing
requests on the same pending result cannot both succeed: the UPDATE only
matches while ``version`` still equals the value the caller read.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import func, or_, update
from sqlmodel import Session, select

from app.models.match import Match
from app.models.match_action_log import MatchActionLog
from app.models.match_participant import MatchParticipant
from app.models.partnership import Partnership
from app.models.player import Player
from app.services.match_roles import (
    active_participants,
    find_participant,
    is_doubles,
    team_partnership,
)
from app.services.workflow_errors import MatchNotFound

logger = logging.getLogger(__name__)

# Stored values read as ONGOING by canonical_status
_ONGOING_VALUES = ("ONGOING", "IN_PROGRESS")


def _pair_on_team(partnership: Partnership, participants: Sequence[MatchParticipant], team: str) -> bool:
    side = {p.user_id for p in active_participants(participants) if p.team == team}
    return partnership.captain_id in side and partnership.partner_id in side


class MatchStore:
    def __init__(self, session: Session):
        self.session = session

    # ── Reads ────────────────────────────────────────────────────────────

    def get_match(self, match_id: int, for_update: bool = False) -> Match:
        stmt = select(Match).where(Match.id == match_id)
        if for_update:
            # Row lock where supported (Postgres); SQLite ignores it
            stmt = stmt.with_for_update()
        match = self.session.exec(stmt).first()
        if not match:
            raise MatchNotFound(f"Match {match_id} not found")
        return match

    def participants(self, match_id: int) -> List[MatchParticipant]:
        return list(
            self.session.exec(
                select(MatchParticipant)
                .where(MatchParticipant.match_id == match_id)
                .order_by(MatchParticipant.joined_at, MatchParticipant.id)
            ).all()
        )

    def active_partnership(self, user_id: Optional[str], season_id: Optional[str]) -> Optional[Partnership]:
        """The user's ACTIVE partnership, scoped to the season when one is given."""
        if not user_id:
            return None
        stmt = select(Partnership).where(
            Partnership.status == "ACTIVE",
            or_(Partnership.captain_id == user_id, Partnership.partner_id == user_id),
        )
        if season_id is not None:
            stmt = stmt.where(Partnership.season_id == season_id)
        return self.session.exec(stmt.order_by(Partnership.id.desc())).first()

    def actor_partnership(
        self, match: Match, participants: Sequence[MatchParticipant], actor_id: Optional[str]
    ):
        """
        Partnership used for the actor's roles on a doubles match.

        A stored partnership counts for a participant only when both of its
        members are on the actor's team in this match; otherwise the team
        assignment stands in. Non-participants keep their stored partnership
        for join eligibility.
        """
        if not is_doubles(match):
            return None
        stored = self.active_partnership(actor_id, match.season_id)
        me = find_participant(active_participants(participants), actor_id)
        if me is None:
            return stored
        if stored is not None and _pair_on_team(stored, participants, me.team):
            return stored
        return team_partnership(participants, actor_id, match.created_by_id)

    def side_captain(self, match: Match, participants: Sequence[MatchParticipant], team: str) -> Optional[str]:
        """Captain of one side: stored partnership captain, else derived from team order."""
        members = [p for p in active_participants(participants) if p.team == team]
        if not members:
            return None
        if not is_doubles(match):
            return members[0].user_id
        for member in members:
            stored = self.active_partnership(member.user_id, match.season_id)
            if stored is not None and _pair_on_team(stored, participants, team):
                return stored.captain_id
        derived = team_partnership(participants, members[0].user_id, match.created_by_id)
        return derived.captain_id if derived else members[0].user_id

    def player_details(self, user_ids: Iterable[str]) -> Dict[str, Player]:
        ids = [u for u in set(user_ids) if u]
        if not ids:
            return {}
        players = self.session.exec(select(Player).where(Player.id.in_(ids))).all()
        return {p.id: p for p in players}

    def action_logged(self, match_id: int, idempotency_key: Optional[str]) -> Optional[MatchActionLog]:
        if not idempotency_key:
            return None
        return self.session.exec(
            select(MatchActionLog).where(
                MatchActionLog.match_id == match_id,
                MatchActionLog.idempotency_key == idempotency_key,
            )
        ).first()

    def pending_auto_approval_ids(self, cutoff: datetime) -> List[int]:
        """ONGOING, undisputed matches whose result was submitted at or before cutoff."""
        rows = self.session.exec(
            select(Match.id)
            .where(
                func.upper(func.trim(Match.status)).in_(_ONGOING_VALUES),
                Match.is_disputed == False,  # noqa: E712
                Match.result_submitted_at.is_not(None),
                Match.result_submitted_at <= cutoff,
            )
            .order_by(Match.id)
        ).all()
        return list(rows)

    # ── Writes ───────────────────────────────────────────────────────────

    def compare_and_swap(self, match: Match, changes: Dict[str, Any]) -> bool:
        """
        Apply ``changes`` only if the row still has the version we read.
        Returns False when another writer got there first. Does not commit.
        """
        values = dict(changes)
        values["version"] = match.version + 1
        result = self.session.execute(
            update(Match)
            .where(Match.id == match.id, Match.version == match.version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def log_action(
        self,
        match_id: int,
        action: str,
        actor_id: Optional[str],
        from_status: str,
        to_status: str,
        now: datetime,
        idempotency_key: Optional[str] = None,
    ) -> MatchActionLog:
        entry = MatchActionLog(
            match_id=match_id,
            action=action,
            actor_id=actor_id,
            idempotency_key=idempotency_key,
            from_status=from_status,
            to_status=to_status,
            created_at=now,
        )
        self.session.add(entry)
        return entry

    def add_participant(self, participant: MatchParticipant) -> MatchParticipant:
        self.session.add(participant)
        return participant

    def bump_version(self, match: Match, now: datetime) -> bool:
        """Version-only CAS for changes that live outside the match row (joins, invites)."""
        return self.compare_and_swap(match, {"updated_at": now})
