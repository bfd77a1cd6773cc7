from typing import Optional

from sqlmodel import Field, SQLModel


class Player(SQLModel, table=True):
    id: str = Field(primary_key=True)  # user id
    name: str
    image_url: Optional[str] = None
