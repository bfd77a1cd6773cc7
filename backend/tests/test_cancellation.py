"""Cancellation guard and the cancel transition."""
from datetime import timedelta

import pytest
from sqlmodel import Session

from app.models.match import Match
from app.services.cancellation_guard import can_cancel, is_late_cancellation
from app.services.match_store import MatchStore
from app.services.result_workflow import cancel_match, submit_result
from app.services.workflow_errors import (
    AlreadyProcessed,
    InvalidState,
    NotAuthorized,
    PreconditionFailed,
    ValidationError,
)
from tests.conftest import T0, add_participant, make_match


@pytest.fixture
def orphaned_match(session: Session):
    """Singles match with only its creator; starts at T0+1h."""
    match = make_match(session)
    add_participant(session, match, "alice", "team1", role="CREATOR")
    return match


def test_creator_cancels_orphaned_match_after_start(session: Session, orphaned_match):
    now = T0 + timedelta(hours=3)
    match = cancel_match(session, orphaned_match.id, "alice", "SCHEDULING_CONFLICT", now, comment="nobody joined")
    assert match.status == "CANCELLED"
    assert match.cancelled_by_id == "alice"
    assert match.cancellation_reason == "SCHEDULING_CONFLICT"
    assert match.cancellation_comment == "nobody joined"
    assert match.is_late_cancellation is False


def test_creator_cancels_orphaned_match_before_start(session: Session, orphaned_match):
    match = cancel_match(session, orphaned_match.id, "alice", "weather", T0)
    assert match.status == "CANCELLED"
    assert match.cancellation_reason == "WEATHER"


def test_cancel_within_four_hours_is_late(session: Session, singles_match):
    match = cancel_match(session, singles_match.id, "bob", "ILLNESS", T0)
    assert match.is_late_cancellation is True


def test_late_cancellation_window():
    match = Match(status="SCHEDULED", match_date=T0 + timedelta(hours=4))
    assert not is_late_cancellation(match, T0)
    assert is_late_cancellation(match, T0 + timedelta(minutes=1))
    assert not is_late_cancellation(match, T0 + timedelta(hours=4))
    assert not is_late_cancellation(Match(status="SCHEDULED"), T0)


def test_full_started_match_cannot_be_cancelled(session: Session, singles_match):
    started = T0 + timedelta(hours=1, minutes=5)
    participants = MatchStore(session).participants(singles_match.id)
    assert can_cancel(singles_match, participants, "alice", started) is False

    with pytest.raises(PreconditionFailed) as exc:
        cancel_match(session, singles_match.id, "alice", "OTHER", started)
    assert exc.value.code == "MATCH_STARTED"
    assert session.get(Match, singles_match.id).status == "SCHEDULED"


def test_participant_can_cancel_partially_filled_started_match(session: Session):
    # Creator is not playing; the only player is still allowed to call it off
    match = make_match(session, created_by_id="zoe")
    add_participant(session, match, "alice", "team1")
    participants = MatchStore(session).participants(match.id)
    assert can_cancel(match, participants, "alice", T0 + timedelta(hours=2)) is True
    assert can_cancel(match, participants, "zoe", T0 + timedelta(hours=2)) is True


def test_outsider_cannot_cancel(session: Session, singles_match):
    with pytest.raises(NotAuthorized):
        cancel_match(session, singles_match.id, "mallory", "OTHER", T0)


def test_unknown_reason_rejected(session: Session, singles_match):
    with pytest.raises(ValidationError):
        cancel_match(session, singles_match.id, "alice", "BORED", T0)


def test_cancel_twice_is_already_processed(session: Session, singles_match):
    cancel_match(session, singles_match.id, "alice", "INJURY", T0)
    with pytest.raises(AlreadyProcessed):
        cancel_match(session, singles_match.id, "alice", "INJURY", T0)


def test_cannot_cancel_once_result_submitted(session: Session, singles_match):
    submit_result(session, singles_match.id, "alice", 6, 4, T0 + timedelta(hours=2))
    with pytest.raises(InvalidState):
        cancel_match(session, singles_match.id, "bob", "OTHER", T0 + timedelta(hours=2))
