from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime

from app.schemas.schedule import ScheduleResponse

class SpecialistBase(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    telephone: str = Field(min_length=3)
    qualification: Optional[str] = None
    avatar: Optional[str] = None

class SpecialistCreate(SpecialistBase):
    pass

class SpecialistResponse(SpecialistBase):
    id: UUID
    created_at: datetime

    class Config:
        from_attributes = True

class SpecialistCreatedResponse(BaseModel):
    specialist: SpecialistResponse
    default_schedule: ScheduleResponse
