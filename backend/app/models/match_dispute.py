"""Dispute details filed by a reviewer against a pending result."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.match import Match


class MatchDispute(SQLModel, table=True):
    __tablename__ = "match_dispute"

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    disputed_by_id: str
    category: str  # WRONG_SCORE | NO_SHOW | BEHAVIOR | OTHER
    reason: str
    disputer_team1_score: Optional[int] = Field(default=None)
    disputer_team2_score: Optional[int] = Field(default=None)
    evidence_urls: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=datetime.utcnow)

    match: "Match" = Relationship(back_populates="disputes")
