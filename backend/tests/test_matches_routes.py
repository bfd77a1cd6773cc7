"""HTTP layer: status codes, error details and response shapes."""
from datetime import timedelta

from fastapi.testclient import TestClient
from sqlmodel import Session

from app.models.match import Match
from tests.conftest import T0, add_participant, add_player, make_match

STARTED = T0 + timedelta(hours=1, minutes=1)


def test_health(client: TestClient):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_get_match_for_outsider_offers_join(client: TestClient, session: Session):
    match = make_match(session)
    add_participant(session, match, "alice", "team1", role="CREATOR")
    add_player(session, "alice", "Alice Smith", image_url="https://img.example/alice.png")

    resp = client.get(f"/api/matches/{match.id}", params={"actor_id": "zed"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["available_actions"] == ["JOIN"]
    assert data["status"] == {"status": "SCHEDULED", "label": "Open", "time_phase": "scheduled", "is_terminal": False}
    assert data["slots_required"] == 2
    assert data["slots_filled"] == 1
    assert data["participants"][0]["name"] == "Alice Smith"
    assert data["countdown"] is None


def test_get_missing_match_is_404(client: TestClient):
    resp = client.get("/api/matches/999")
    assert resp.status_code == 404
    assert resp.json()["detail"].startswith("MATCH_NOT_FOUND:")


def test_submit_and_confirm_over_http(client: TestClient, session: Session, clock, events, singles_match):
    clock.set(STARTED)
    resp = client.post(
        f"/api/matches/{singles_match.id}/result",
        json={"actor_id": "alice", "team1_score": 6, "team2_score": 3, "comment": "close one"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ONGOING"
    assert body["result_submitted_by_id"] == "alice"
    assert body["version"] == 2

    clock.advance(timedelta(hours=1))
    state = client.get(f"/api/matches/{singles_match.id}", params={"actor_id": "bob"}).json()
    assert state["available_actions"] == ["REVIEW_RESULT"]
    assert state["countdown"] == {"hours": 23, "minutes": 0, "expired": False}

    resp = client.post(f"/api/matches/{singles_match.id}/review", json={"actor_id": "bob", "decision": "confirm"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"

    again = client.post(f"/api/matches/{singles_match.id}/review", json={"actor_id": "bob", "decision": "confirm"})
    assert again.status_code == 409
    assert again.json()["detail"].startswith("ALREADY_PROCESSED:")

    assert [name for name, _ in events.events] == ["match_updated", "match_updated"]


def test_error_status_codes(client: TestClient, clock, singles_match):
    url = f"/api/matches/{singles_match.id}/result"

    before_start = client.post(url, json={"actor_id": "alice", "team1_score": 6, "team2_score": 3})
    assert before_start.status_code == 400
    assert before_start.json()["detail"].startswith("MATCH_TIME_NOT_REACHED:")

    clock.set(STARTED)
    outsider = client.post(url, json={"actor_id": "mallory", "team1_score": 6, "team2_score": 3})
    assert outsider.status_code == 403

    missing_score = client.post(url, json={"actor_id": "alice", "team1_score": 6})
    assert missing_score.status_code == 422
    assert missing_score.json()["detail"].startswith("MISSING_SCORE:")

    # Body validation by FastAPI itself
    assert client.post(url, json={"team1_score": 6, "team2_score": 3}).status_code == 422


def test_dispute_with_details(client: TestClient, session: Session, clock, singles_match):
    clock.set(STARTED)
    client.post(f"/api/matches/{singles_match.id}/result", json={"actor_id": "alice", "team1_score": 6, "team2_score": 3})
    resp = client.post(
        f"/api/matches/{singles_match.id}/review",
        json={
            "actor_id": "bob",
            "decision": "dispute",
            "dispute": {"category": "WRONG_SCORE", "reason": "I won the first set six games to four."},
        },
    )
    assert resp.status_code == 200
    assert resp.json()["is_disputed"] is True

    state = client.get(f"/api/matches/{singles_match.id}", params={"actor_id": "bob"}).json()
    assert state["status"]["label"] == "Disputed"
    assert state["available_actions"] == ["VIEW_ONLY"]
    assert state["action_hint"] == "disputed"


def test_read_applies_due_auto_approval(client: TestClient, session: Session, clock, singles_match):
    clock.set(STARTED)
    client.post(f"/api/matches/{singles_match.id}/result", json={"actor_id": "alice", "team1_score": 6, "team2_score": 3})

    clock.advance(timedelta(hours=24, seconds=1))
    state = client.get(f"/api/matches/{singles_match.id}").json()
    assert state["match"]["status"] == "COMPLETED"
    assert state["match"]["auto_approved"] is True
    assert state["status"]["label"] == "Finished"


def test_auto_approval_endpoints(client: TestClient, clock, singles_match):
    clock.set(STARTED)
    client.post(f"/api/matches/{singles_match.id}/result", json={"actor_id": "alice", "team1_score": 6, "team2_score": 3})

    not_due = client.post(f"/api/matches/{singles_match.id}/auto-approval")
    assert not_due.status_code == 200
    assert not_due.json()["status"] == "ONGOING"

    clock.advance(timedelta(hours=25))
    sweep = client.post("/api/matches/auto-approval/sweep")
    assert sweep.status_code == 200
    assert sweep.json() == {"checked": 1, "approved": [singles_match.id], "failed": []}


def test_walkover_over_http(client: TestClient, clock, singles_match):
    clock.set(STARTED)
    resp = client.post(
        f"/api/matches/{singles_match.id}/walkover",
        json={"actor_id": "alice", "defaulting_user_id": "bob", "reason": "NO_SHOW"},
    )
    assert resp.status_code == 200
    walkover = resp.json()["walkover"]
    assert walkover["reason_label"] == "No Show"
    assert walkover["winning_player_id"] == "alice"

    bad = client.post(
        f"/api/matches/{singles_match.id}/walkover",
        json={"actor_id": "alice", "defaulting_user_id": "bob", "reason": "WHATEVER"},
    )
    assert bad.status_code == 422


def test_cancel_over_http(client: TestClient, session: Session, singles_match):
    resp = client.post(
        f"/api/matches/{singles_match.id}/cancel",
        json={"actor_id": "bob", "reason": "WORK_COMMITMENT", "comment": "called into work"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "CANCELLED"
    assert data["is_late_cancellation"] is True

    session.expire_all()
    assert session.get(Match, singles_match.id).cancelled_by_id == "bob"


def test_join_and_invitation_over_http(client: TestClient, session: Session, events):
    match = make_match(session)
    add_participant(session, match, "alice", "team1")
    add_participant(session, match, "bob", "team2", invitation_status="PENDING")

    state = client.get(f"/api/matches/{match.id}", params={"actor_id": "bob"}).json()
    assert state["available_actions"] == ["ACCEPT_INVITE"]

    resp = client.post(f"/api/matches/{match.id}/invitation", json={"actor_id": "bob", "accept": False})
    assert resp.status_code == 200

    joined = client.post(f"/api/matches/{match.id}/join", json={"actor_id": "carol"})
    assert joined.status_code == 200
    assert {p["user_id"] for p in joined.json() if p["invitation_status"] == "ACCEPTED"} == {"alice", "carol"}
    assert events.events[-1][0] == "match_participant_joined"

    full = client.post(f"/api/matches/{match.id}/join", json={"actor_id": "dave"})
    assert full.status_code == 400
    assert full.json()["detail"].startswith("MATCH_FULL:")


def test_admin_void(client: TestClient, singles_match):
    resp = client.post(f"/api/admin/matches/{singles_match.id}/void", json={"admin_id": "admin", "reason": "duplicate"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "VOID"

    again = client.post(f"/api/admin/matches/{singles_match.id}/void", json={})
    assert again.status_code == 409
