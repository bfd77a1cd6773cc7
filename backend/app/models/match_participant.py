from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.match import Match


class MatchParticipant(SQLModel, table=True):
    __tablename__ = "match_participant"
    __table_args__ = (SAUniqueConstraint("match_id", "user_id", name="uq_participant_match_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    user_id: str = Field(index=True)
    team: str = Field(default="unassigned")  # "team1" | "team2" | "unassigned"
    invitation_status: str = Field(default="PENDING")  # PENDING | ACCEPTED | DECLINED
    role: Optional[str] = Field(default=None)  # CREATOR | CAPTAIN | PARTNER | PLAYER
    joined_at: datetime = Field(default_factory=datetime.utcnow)

    match: "Match" = Relationship(back_populates="participants")
