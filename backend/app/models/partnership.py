from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Partnership(SQLModel, table=True):
    """A doubles pair within a season. Only the captain adjudicates results."""

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: Optional[str] = Field(default=None, index=True)
    captain_id: str = Field(index=True)
    partner_id: str = Field(index=True)
    status: str = Field(default="ACTIVE")  # ACTIVE | DISSOLVED
    created_at: datetime = Field(default_factory=datetime.utcnow)
