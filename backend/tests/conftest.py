import os

# Keep the app's own engine and background sweep out of the test run
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AUTO_APPROVAL_SWEEP_ENABLED", "false")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from app.database import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models.match import Match  # noqa: E402
from app.models.match_participant import MatchParticipant  # noqa: E402
from app.models.partnership import Partnership  # noqa: E402
from app.models.player import Player  # noqa: E402
from app.services.match_events import RecordingEventPublisher, get_event_publisher  # noqa: E402
from app.utils.clock import FixedClock, get_clock  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables are rebuilt for every test (see session_fixture)
# 4. App dependencies overridden to use test_engine, a pinned clock and a
#    recording event publisher (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Reference instant for all scenarios
T0 = datetime(2026, 3, 2, 9, 0, 0)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema."""
    import app.models  # noqa: F401

    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="clock")
def clock_fixture():
    return FixedClock(T0)


@pytest.fixture(name="events")
def events_fixture():
    return RecordingEventPublisher()


@pytest.fixture(name="client")
def client_fixture(session: Session, clock: FixedClock, events: RecordingEventPublisher):
    """Provide a test client with overridden session, clock and event publisher.

    Overrides MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_event_publisher] = lambda: events

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Builders
# ============================================================================


def make_match(session: Session, **overrides) -> Match:
    values = {
        "match_type": "SINGLES",
        "created_by_id": "alice",
        "season_id": "s1",
        "status": "SCHEDULED",
        "match_date": T0 + timedelta(hours=1),
    }
    values.update(overrides)
    match = Match(**values)
    session.add(match)
    session.commit()
    session.refresh(match)
    return match


def add_participant(
    session: Session,
    match: Match,
    user_id: str,
    team: str,
    invitation_status: str = "ACCEPTED",
    role: str = None,
    joined_at: datetime = None,
) -> MatchParticipant:
    participant = MatchParticipant(
        match_id=match.id,
        user_id=user_id,
        team=team,
        invitation_status=invitation_status,
        role=role,
        joined_at=joined_at or T0,
    )
    session.add(participant)
    session.commit()
    session.refresh(participant)
    return participant


def add_partnership(session: Session, captain_id: str, partner_id: str, season_id: str = "s1") -> Partnership:
    partnership = Partnership(captain_id=captain_id, partner_id=partner_id, season_id=season_id)
    session.add(partnership)
    session.commit()
    session.refresh(partnership)
    return partnership


def add_player(session: Session, user_id: str, name: str, image_url: str = None) -> Player:
    player = Player(id=user_id, name=name, image_url=image_url)
    session.add(player)
    session.commit()
    return player


@pytest.fixture
def singles_match(session: Session):
    """Full singles match: alice (creator, team1) vs bob (team2), starts at T0+1h."""
    match = make_match(session)
    add_participant(session, match, "alice", "team1", role="CREATOR")
    add_participant(session, match, "bob", "team2", joined_at=T0 + timedelta(minutes=5))
    return match


@pytest.fixture
def doubles_match(session: Session):
    """
    Full league doubles match starting at T0+1h.
    Side A: cap_a (captain) + par_a. Side B: cap_b (captain) + par_b.
    """
    match = make_match(session, match_type="DOUBLES", created_by_id="cap_a")
    add_partnership(session, "cap_a", "par_a")
    add_partnership(session, "cap_b", "par_b")
    add_participant(session, match, "cap_a", "team1", role="CAPTAIN")
    add_participant(session, match, "par_a", "team1", role="PARTNER", joined_at=T0 + timedelta(minutes=1))
    add_participant(session, match, "cap_b", "team2", role="CAPTAIN", joined_at=T0 + timedelta(minutes=5))
    add_participant(session, match, "par_b", "team2", role="PARTNER", joined_at=T0 + timedelta(minutes=10))
    return match
