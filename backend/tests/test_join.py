"""Joining open matches and answering invitations."""
from datetime import timedelta

import pytest
from sqlmodel import Session

from app.services.match_events import RecordingEventPublisher
from app.services.match_roles import slot_state
from app.services.result_workflow import join_match, respond_to_invitation
from app.services.workflow_errors import (
    AlreadyProcessed,
    InvalidState,
    NotAuthorized,
    PreconditionFailed,
    ValidationError,
)
from tests.conftest import T0, add_participant, add_partnership, make_match


@pytest.fixture
def open_singles(session: Session):
    match = make_match(session)
    add_participant(session, match, "alice", "team1", role="CREATOR")
    return match


@pytest.fixture
def half_doubles(session: Session):
    """League doubles match with side A seated and side B open."""
    match = make_match(session, match_type="DOUBLES", created_by_id="cap_a")
    add_partnership(session, "cap_a", "par_a")
    add_participant(session, match, "cap_a", "team1", role="CAPTAIN")
    add_participant(session, match, "par_a", "team1", role="PARTNER")
    return match


def test_join_open_singles(session: Session, open_singles):
    events = RecordingEventPublisher()
    participants = join_match(session, open_singles.id, "bob", T0, publisher=events)

    bob = next(p for p in participants if p.user_id == "bob")
    assert bob.team == "team2"
    assert bob.invitation_status == "ACCEPTED"
    assert slot_state(open_singles, participants).all_filled
    assert events.events == [("match_participant_joined", {"match_id": open_singles.id, "user_ids": ["bob"], "team": "team2"})]


def test_join_full_match_rejected(session: Session, singles_match):
    with pytest.raises(PreconditionFailed) as exc:
        join_match(session, singles_match.id, "carol", T0)
    assert exc.value.code == "MATCH_FULL"


def test_join_after_start_rejected(session: Session, open_singles):
    with pytest.raises(PreconditionFailed) as exc:
        join_match(session, open_singles.id, "bob", T0 + timedelta(hours=2))
    assert exc.value.code == "MATCH_TIME_PASSED"


def test_join_twice_is_already_processed(session: Session, open_singles):
    join_match(session, open_singles.id, "bob", T0)
    with pytest.raises(AlreadyProcessed):
        join_match(session, open_singles.id, "bob", T0)


def test_join_cancelled_match_rejected(session: Session, open_singles):
    open_singles.status = "CANCELLED"
    session.add(open_singles)
    session.commit()
    with pytest.raises(InvalidState):
        join_match(session, open_singles.id, "bob", T0)


def test_league_doubles_requires_partnership(session: Session, half_doubles):
    with pytest.raises(NotAuthorized) as exc:
        join_match(session, half_doubles.id, "loner", T0)
    assert exc.value.code == "NO_ACTIVE_PARTNERSHIP"


def test_league_doubles_pair_joins_together(session: Session, half_doubles):
    add_partnership(session, "cap_b", "par_b")
    participants = join_match(session, half_doubles.id, "par_b", T0)

    side_b = {p.user_id: p for p in participants if p.team == "team2"}
    assert set(side_b) == {"cap_b", "par_b"}
    assert side_b["cap_b"].role == "CAPTAIN"
    assert side_b["par_b"].role == "PARTNER"
    assert slot_state(half_doubles, participants).all_filled


def test_partner_must_match_partnership(session: Session, half_doubles):
    add_partnership(session, "cap_b", "par_b")
    with pytest.raises(ValidationError):
        join_match(session, half_doubles.id, "cap_b", T0, partner_id="someone_else")


def test_friendly_doubles_allows_solo_join(session: Session):
    match = make_match(session, match_type="DOUBLES", is_friendly=True)
    add_participant(session, match, "alice", "team1")
    participants = join_match(session, match.id, "bob", T0, team="team1")
    assert {p.user_id: p.team for p in participants} == {"alice": "team1", "bob": "team1"}


def test_idempotency_key_on_join(session: Session, open_singles):
    join_match(session, open_singles.id, "bob", T0, idempotency_key="join-1")
    with pytest.raises(AlreadyProcessed):
        join_match(session, open_singles.id, "carol", T0, idempotency_key="join-1")


# ============================================================================
# Invitations
# ============================================================================


def test_accept_invitation(session: Session, open_singles):
    add_participant(session, open_singles, "bob", "team2", invitation_status="PENDING")
    participants = respond_to_invitation(session, open_singles.id, "bob", True, T0)
    assert slot_state(open_singles, participants).all_accepted

    with pytest.raises(AlreadyProcessed):
        respond_to_invitation(session, open_singles.id, "bob", True, T0)


def test_declined_invitation_frees_the_slot(session: Session, open_singles):
    add_participant(session, open_singles, "bob", "team2", invitation_status="PENDING")
    respond_to_invitation(session, open_singles.id, "bob", False, T0)

    participants = join_match(session, open_singles.id, "carol", T0)
    assert {p.user_id for p in participants if p.invitation_status == "ACCEPTED"} == {"alice", "carol"}

    with pytest.raises(InvalidState):
        respond_to_invitation(session, open_singles.id, "bob", True, T0)


def test_rejoin_after_decline_reuses_row(session: Session, open_singles):
    add_participant(session, open_singles, "bob", "team2", invitation_status="PENDING")
    respond_to_invitation(session, open_singles.id, "bob", False, T0)
    participants = join_match(session, open_singles.id, "bob", T0 + timedelta(minutes=5))
    bobs = [p for p in participants if p.user_id == "bob"]
    assert len(bobs) == 1
    assert bobs[0].invitation_status == "ACCEPTED"


def test_uninvited_user_cannot_respond(session: Session, open_singles):
    with pytest.raises(NotAuthorized):
        respond_to_invitation(session, open_singles.id, "zed", True, T0)
