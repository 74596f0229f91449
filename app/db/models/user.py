from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from typing import Optional
from datetime import datetime, date
from uuid import UUID, uuid4

from app.core.utils import utcnow

class User(SQLModel, table=True):
    __tablename__ = "users"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    email: Optional[str] = Field(default=None, index=True)
    avatar: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[date] = None
    role: str = Field(default="user") # user, doctor, admin
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
