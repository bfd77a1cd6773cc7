from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.match_dispute import MatchDispute
    from app.models.match_participant import MatchParticipant


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    match_type: str = Field(default="SINGLES")  # "SINGLES" | "DOUBLES"
    created_by_id: Optional[str] = Field(default=None, index=True)
    season_id: Optional[str] = Field(default=None, index=True)
    is_friendly: bool = Field(default=False)

    # SCHEDULED | ONGOING | UNFINISHED | COMPLETED | FINISHED | CANCELLED | DRAFT | VOID
    status: str = Field(default="SCHEDULED", index=True)

    # Authoritative start instant (naive UTC). Legacy strings only used when null.
    match_date: Optional[datetime] = Field(default=None)
    date: Optional[str] = Field(default=None)  # "Dec 04, 2025"
    time: Optional[str] = Field(default=None)  # "1:30 PM"
    duration: Optional[str] = Field(default=None)  # hours, e.g. "2"

    # Result (owned by the result workflow)
    team1_score: Optional[int] = Field(default=None)
    team2_score: Optional[int] = Field(default=None)
    set_scores: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    result_comment: Optional[str] = Field(default=None)
    result_submitted_by_id: Optional[str] = Field(default=None)
    result_submitted_at: Optional[datetime] = Field(default=None, index=True)
    result_is_unfinished: bool = Field(default=False)
    result_is_casual_play: bool = Field(default=False)
    is_disputed: bool = Field(default=False)
    auto_approved: bool = Field(default=False)
    completed_at: Optional[datetime] = Field(default=None)

    # Walkover
    is_walkover: bool = Field(default=False)
    walkover_reason: Optional[str] = Field(default=None)  # NO_SHOW | LATE_CANCELLATION | INJURY | ...
    walkover_defaulting_player_id: Optional[str] = Field(default=None)
    walkover_winning_player_id: Optional[str] = Field(default=None)
    walkover_reason_detail: Optional[str] = Field(default=None)
    walkover_recorded_by_id: Optional[str] = Field(default=None)

    # Cancellation / void
    cancellation_reason: Optional[str] = Field(default=None)
    cancellation_comment: Optional[str] = Field(default=None)
    cancelled_by_id: Optional[str] = Field(default=None)
    cancelled_at: Optional[datetime] = Field(default=None)
    is_late_cancellation: bool = Field(default=False)
    void_reason: Optional[str] = Field(default=None)
    voided_at: Optional[datetime] = Field(default=None)

    # Eligibility metadata (read-only here)
    gender_restriction: Optional[str] = Field(default=None)  # MALE | FEMALE | OPEN
    skill_levels: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    # Bumped on every workflow transition (compare-and-swap guard)
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    participants: List["MatchParticipant"] = Relationship(back_populates="match")
    disputes: List["MatchDispute"] = Relationship(back_populates="match")
