"""Canonical status resolution and legacy start-time parsing."""
from datetime import datetime, timedelta

from app.models.match import Match
from app.services.match_status import (
    MatchStatus,
    TimePhase,
    canonical_status,
    is_match_time_reached,
    is_terminal_status,
    parse_legacy_start,
    resolve_status,
    time_phase,
)

START = datetime(2026, 3, 2, 10, 0, 0)


def test_canonical_status_aliases_and_defaults():
    assert canonical_status(None) == MatchStatus.SCHEDULED
    assert canonical_status("  ") == MatchStatus.SCHEDULED
    assert canonical_status("FINISHED") == MatchStatus.COMPLETED
    assert canonical_status("finished") == MatchStatus.COMPLETED
    assert canonical_status("IN_PROGRESS") == MatchStatus.ONGOING
    assert canonical_status("OPEN") == MatchStatus.SCHEDULED
    assert canonical_status("VOID") == MatchStatus.VOID
    assert canonical_status("ARCHIVED") is None


def test_terminal_statuses():
    assert is_terminal_status("COMPLETED")
    assert is_terminal_status("FINISHED")
    assert is_terminal_status("CANCELLED")
    assert is_terminal_status("VOID")
    assert not is_terminal_status("ONGOING")
    assert not is_terminal_status("UNFINISHED")


def test_parse_legacy_start_pm_and_midnight():
    assert parse_legacy_start("Dec 04, 2025", "1:30 PM", tz_name="UTC") == datetime(2025, 12, 4, 13, 30)
    assert parse_legacy_start("Dec 04, 2025", "12:15 AM", tz_name="UTC") == datetime(2025, 12, 4, 0, 15)
    assert parse_legacy_start("Dec 04, 2025", "12:00 PM", tz_name="UTC") == datetime(2025, 12, 4, 12, 0)


def test_parse_legacy_start_converts_league_timezone_to_utc():
    # EST is UTC-5 in December
    assert parse_legacy_start("Dec 04, 2025", "1:30 PM", tz_name="America/New_York") == datetime(2025, 12, 4, 18, 30)


def test_parse_legacy_start_unknown_timezone_falls_back_to_utc():
    assert parse_legacy_start("Dec 04, 2025", "1:30 PM", tz_name="Mars/Olympus") == datetime(2025, 12, 4, 13, 30)


def test_parse_legacy_start_malformed_returns_none():
    assert parse_legacy_start(None, "1:30 PM") is None
    assert parse_legacy_start("Dec 04, 2025", None) is None
    assert parse_legacy_start("Smarch 04, 2025", "1:30 PM") is None
    assert parse_legacy_start("2025-12-04", "1:30 PM") is None
    assert parse_legacy_start("Dec 04, 2025", "13h30") is None
    assert parse_legacy_start("Feb 30, 2025", "1:00 PM") is None


def test_unparseable_start_is_never_reached():
    match = Match(status="SCHEDULED", date="sometime", time="soon")
    assert is_match_time_reached(match, datetime(2100, 1, 1)) is False
    assert time_phase(match, datetime(2100, 1, 1)) is None


def test_match_date_takes_precedence_over_legacy_strings():
    match = Match(status="SCHEDULED", match_date=START, date="Dec 04, 2099", time="1:30 PM")
    assert is_match_time_reached(match, START)
    assert not is_match_time_reached(match, START - timedelta(seconds=1))


def test_legacy_strings_used_when_match_date_missing():
    match = Match(status="SCHEDULED", date="Mar 02, 2026", time="10:00 AM")
    assert is_match_time_reached(match, START)
    assert not is_match_time_reached(match, START - timedelta(minutes=1))


def test_time_phase_uses_duration():
    match = Match(status="SCHEDULED", match_date=START, duration="2")
    assert time_phase(match, START - timedelta(minutes=1)) == TimePhase.SCHEDULED
    assert time_phase(match, START + timedelta(hours=2)) == TimePhase.IN_PROGRESS
    assert time_phase(match, START + timedelta(hours=2, minutes=1)) == TimePhase.TIME_PASSED
    assert time_phase(match, START + timedelta(hours=6)) == TimePhase.TIME_PASSED


def test_resolve_status_labels_for_scheduled_matches():
    match = Match(status="SCHEDULED", match_date=START)
    assert resolve_status(match, START - timedelta(hours=1)).label == "Open"
    assert resolve_status(match, START - timedelta(hours=1), all_slots_filled=True).label == "Scheduled"
    in_progress = resolve_status(match, START + timedelta(minutes=30))
    assert in_progress.label == "In Progress"
    assert in_progress.time_phase == TimePhase.IN_PROGRESS
    assert resolve_status(match, START + timedelta(hours=5)).label == "Time Passed"


def test_terminal_status_wins_over_clock():
    # Start is still in the future, but the store says the match is over
    future = START + timedelta(days=3)
    finished = resolve_status(Match(status="FINISHED", match_date=future), START)
    assert finished.status == MatchStatus.COMPLETED
    assert finished.label == "Finished"
    assert finished.time_phase is None
    assert finished.is_terminal

    walkover = resolve_status(Match(status="COMPLETED", is_walkover=True, match_date=future), START)
    assert walkover.label == "Walkover"

    assert resolve_status(Match(status="CANCELLED", match_date=START), START + timedelta(minutes=5)).label == "Cancelled"
    assert resolve_status(Match(status="VOID"), START).label == "Voided"


def test_resolve_status_ongoing_labels():
    assert resolve_status(Match(status="ONGOING"), START).label == "In Progress"
    assert resolve_status(Match(status="ONGOING", is_disputed=True), START).label == "Disputed"
    assert resolve_status(Match(status="UNFINISHED"), START).label == "Unfinished"
    assert resolve_status(Match(status="DRAFT"), START).label == "Draft"
