from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4

from app.core.utils import utcnow

class Specialist(SQLModel, table=True):
    __tablename__ = "specialists"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    first_name: str
    last_name: str
    email: str = Field(index=True, unique=True)
    telephone: str
    qualification: Optional[str] = None
    avatar: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
