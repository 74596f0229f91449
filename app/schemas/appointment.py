from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import date, datetime
from enum import Enum
from typing import Optional, List

from app.core.lifecycle import AppointmentStatus
from app.schemas.schedule import HHMM_PATTERN

class AppointmentDuration(str, Enum):
    MIN_15 = "15"
    MIN_30 = "30"
    MIN_45 = "45"
    MIN_60 = "60"

class ConsultationType(str, Enum):
    ONLINE = "online"
    ON_SITE = "on-site"

class AppointmentDetails(BaseModel):
    title: Optional[str] = None
    day: date
    time: str = Field(pattern=HHMM_PATTERN)
    consultation_reason: str = Field(min_length=1)
    appointment_duration: AppointmentDuration = AppointmentDuration.MIN_30
    video_call_link: Optional[str] = None
    is_first_visit: bool = True
    is_taking_meds: bool = False
    has_allergy: bool = False
    has_disability: bool = False
    focus_area: Optional[str] = None
    uploads: Optional[str] = None
    consultation_type: ConsultationType = ConsultationType.ONLINE
    patient_sex: Optional[str] = None
    patient_date_of_birth: Optional[date] = None

class AppointmentCreatePatient(AppointmentDetails):
    # Optional so a missing id is reported as a bad specialist id, not a schema error
    doctor_id: Optional[UUID] = None

class AppointmentCreateAdmin(AppointmentDetails):
    doctor_id: UUID
    patient_id: Optional[UUID] = None

class AppointmentUpdate(BaseModel):
    title: Optional[str] = None
    consultation_reason: Optional[str] = Field(default=None, min_length=1)
    appointment_duration: Optional[AppointmentDuration] = None
    video_call_link: Optional[str] = None
    is_first_visit: Optional[bool] = None
    is_taking_meds: Optional[bool] = None
    has_allergy: Optional[bool] = None
    has_disability: Optional[bool] = None
    focus_area: Optional[str] = None
    uploads: Optional[str] = None
    consultation_type: Optional[ConsultationType] = None
    patient_sex: Optional[str] = None
    patient_date_of_birth: Optional[date] = None

    @field_validator(
        "consultation_reason",
        "appointment_duration",
        "is_first_visit",
        "is_taking_meds",
        "has_allergy",
        "has_disability",
        "consultation_type",
    )
    @classmethod
    def not_null(cls, value, info):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

class AppointmentReschedule(BaseModel):
    day: date
    time: str = Field(pattern=HHMM_PATTERN)
    specialist_note: Optional[str] = None

class AppointmentCancel(BaseModel):
    specialist_note: Optional[str] = None

class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None

class ReviewResponse(ReviewCreate):
    user_id: UUID
    created_at: datetime
    updated_at: datetime

class DoctorSummary(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    qualification: Optional[str] = None
    avatar: Optional[str] = None

    class Config:
        from_attributes = True

class PatientSummary(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    avatar: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[date] = None

    class Config:
        from_attributes = True

class AppointmentResponse(BaseModel):
    id: UUID
    title: Optional[str] = None
    day: Optional[date] = None
    time: Optional[str] = None
    end_time: Optional[str] = None
    ends_next_day: bool = False
    status: AppointmentStatus
    consultation_reason: str
    patient_id: Optional[UUID] = None
    doctor_id: UUID
    patient: Optional[PatientSummary] = None
    doctor: Optional[DoctorSummary] = None
    appointment_duration: AppointmentDuration
    video_call_link: Optional[str] = None
    is_first_visit: bool
    is_taking_meds: bool
    has_allergy: bool
    has_disability: bool
    focus_area: Optional[str] = None
    uploads: Optional[str] = None
    consultation_type: ConsultationType
    specialist_note: Optional[str] = None
    reviews: List[ReviewResponse] = []
    patient_sex: Optional[str] = None
    patient_date_of_birth: Optional[date] = None
    created_at: datetime
    updated_at: datetime

class AppointmentListResponse(BaseModel):
    results: int
    docs: List[AppointmentResponse]

class MyDoctorsResponse(BaseModel):
    results: int
    doctors: List[DoctorSummary]
