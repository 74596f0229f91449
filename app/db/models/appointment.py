from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Column, DateTime
from typing import Optional, List
from datetime import datetime, date
from uuid import UUID, uuid4

from app.core.utils import utcnow

class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: Optional[str] = None
    day: Optional[date] = None
    time: Optional[str] = None # HH:mm
    status: str = Field(default="pending", index=True) # pending, upcoming, postponed, canceled, completed
    consultation_reason: str
    patient_id: Optional[UUID] = Field(default=None, foreign_key="users.id", index=True)
    doctor_id: UUID = Field(foreign_key="specialists.id", index=True)
    appointment_duration: str = Field(default="30") # 15, 30, 45, 60
    video_call_link: Optional[str] = None
    is_first_visit: bool = Field(default=True)
    is_taking_meds: bool = Field(default=False)
    has_allergy: bool = Field(default=False)
    has_disability: bool = Field(default=False)
    focus_area: Optional[str] = None
    uploads: Optional[str] = None
    consultation_type: str = Field(default="online") # online, on-site
    specialist_note: Optional[str] = None
    reviews: List[dict] = Field(default=[], sa_column=Column(JSON))
    patient_sex: Optional[str] = None
    patient_date_of_birth: Optional[date] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
