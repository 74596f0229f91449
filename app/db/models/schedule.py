from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Column, DateTime
from typing import Optional, List
from datetime import datetime
from uuid import UUID, uuid4

from app.core.utils import utcnow

class Schedule(SQLModel, table=True):
    __tablename__ = "schedules"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="specialists.id", index=True)
    title: Optional[str] = None
    # {"Monday": [{"start_time": "09:00", "end_time": "16:00"}], ...}
    days_of_week: dict = Field(default={}, sa_column=Column(JSON))
    timezone: Optional[str] = None
    location: str # Online, On-site
    appointment_types: List[str] = Field(default=["Consultation"], sa_column=Column(JSON))
    notes: Optional[str] = None
    is_active: bool = Field(default=True)
    is_default: bool = Field(default=False)
    overrides: List[dict] = Field(default=[], sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
