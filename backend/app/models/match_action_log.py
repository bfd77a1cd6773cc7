"""Audit trail of applied workflow transitions; doubles as the idempotency ledger."""

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class MatchActionLog(SQLModel, table=True):
    __tablename__ = "match_action_log"
    __table_args__ = (SAUniqueConstraint("match_id", "idempotency_key", name="uq_action_log_match_key"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="match.id", index=True)
    action: str  # submit | confirm | dispute | auto_approve | cancel | void | walkover | join | ...
    actor_id: Optional[str] = Field(default=None)  # null for system-initiated
    idempotency_key: Optional[str] = Field(default=None)
    from_status: str
    to_status: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
