from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from app.core.availability import find_overlap
from app.core.utils import parse_hhmm

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

class Location(str, Enum):
    ONLINE = "Online"
    ON_SITE = "On-site"

class AppointmentType(str, Enum):
    CONSULTATION = "Consultation"
    FOLLOW_UP = "Follow-up"
    EMERGENCY = "Emergency"
    CHECK_UP = "Check-up"

class AvailabilityInterval(BaseModel):
    start_time: str = Field(pattern=HHMM_PATTERN)
    end_time: str = Field(pattern=HHMM_PATTERN)

    @model_validator(mode="after")
    def check_order(self):
        if parse_hhmm(self.start_time) >= parse_hhmm(self.end_time):
            raise ValueError("Start time must be before end time")
        return self

class Override(AvailabilityInterval):
    date: date
    timezone: str
    location: Location
    reason: str = ""
    is_active: bool = True

def normalize_days(value: Optional[Dict[str, list]]) -> Dict[str, list]:
    value = value or {}
    unknown = set(value) - set(WEEKDAYS)
    if unknown:
        raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
    return {day: value.get(day) or [] for day in WEEKDAYS}

class ScheduleBase(BaseModel):
    title: Optional[str] = None
    days_of_week: Dict[str, List[AvailabilityInterval]]
    timezone: Optional[str] = None
    location: Location
    appointment_types: List[AppointmentType] = [AppointmentType.CONSULTATION]
    notes: Optional[str] = None
    is_active: bool = True
    is_default: bool = False
    overrides: List[Override] = []

    @field_validator("days_of_week", mode="before")
    @classmethod
    def fill_weekdays(cls, value):
        return normalize_days(value)

    @model_validator(mode="after")
    def check_overlaps(self):
        for day, intervals in self.days_of_week.items():
            clash = find_overlap([i.model_dump() for i in intervals])
            if clash:
                first, second = clash
                raise ValueError(
                    f"{day} intervals {first['start_time']}-{first['end_time']} and "
                    f"{second['start_time']}-{second['end_time']} overlap"
                )
        return self

class ScheduleCreate(ScheduleBase):
    pass

class ScheduleUpdate(BaseModel):
    title: Optional[str] = None
    days_of_week: Optional[Dict[str, List[AvailabilityInterval]]] = None
    timezone: Optional[str] = None
    location: Optional[Location] = None
    appointment_types: Optional[List[AppointmentType]] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    overrides: Optional[List[Override]] = None

class OverrideCreate(Override):
    pass

class ScheduleResponse(ScheduleBase):
    id: UUID
    doctor_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class FreeInterval(BaseModel):
    start_time: str
    end_time: str
    schedule_id: UUID
    location: Location
    timezone: Optional[str] = None
    is_override: bool = False

class AvailabilityResponse(BaseModel):
    doctor_id: UUID
    date: date
    weekday: str
    intervals: List[FreeInterval]
