from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.lifecycle import AppointmentAction, InvalidTransition, next_status
from app.core.logger import get_logger
from app.core.security import CurrentIdentity
from app.core.utils import compute_end_time, utcnow
from app.db.models import Appointment, Specialist, User
from app.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreateAdmin,
    AppointmentCreatePatient,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentUpdate,
    DoctorSummary,
    ReviewCreate,
)
from app.services.directory_service import DirectoryService

logger = get_logger("appointments")

class AppointmentService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.directory = DirectoryService(session)

    async def get_appointment(self, appointment_id: UUID) -> Appointment:
        appointment = await self.session.get(Appointment, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def ensure_participant(self, appointment: Appointment, identity: CurrentIdentity) -> None:
        if identity.is_admin or identity.id in (appointment.patient_id, appointment.doctor_id):
            return
        raise HTTPException(status_code=403, detail="You do not have access to this appointment")

    async def _resolve_specialist(self, doctor_id: Optional[UUID]) -> Specialist:
        if not doctor_id:
            raise HTTPException(status_code=400, detail="Please provide a valid specialist ID")
        specialist = await self.directory.get_specialist(doctor_id)
        if not specialist:
            raise HTTPException(status_code=400, detail="No specialist matching that ID was found")
        return specialist

    async def create_appointment_patient(self, data: AppointmentCreatePatient, patient_id: UUID) -> tuple[Appointment, User, Specialist]:
        # 1. Validate Patient
        patient = await self.directory.get_user(patient_id)
        if not patient:
            raise HTTPException(status_code=404, detail="There is no user, with that ID")

        # 2. Validate Doctor
        specialist = await self._resolve_specialist(data.doctor_id)

        # 3. Create Appointment
        appointment = Appointment(
            **data.model_dump(mode="json", exclude={"doctor_id", "day", "patient_date_of_birth"}),
            day=data.day,
            patient_date_of_birth=data.patient_date_of_birth,
            doctor_id=specialist.id,
            patient_id=patient.id,
            status="pending",
        )
        self.session.add(appointment)
        await self.session.commit()
        await self.session.refresh(appointment)

        logger.info(f"Appointment {appointment.id} booked by {patient.id} with {specialist.id}")
        return appointment, patient, specialist

    async def create_appointment_admin(self, data: AppointmentCreateAdmin) -> Appointment:
        specialist = await self._resolve_specialist(data.doctor_id)

        if data.patient_id and not await self.directory.get_user(data.patient_id):
            raise HTTPException(status_code=400, detail="No user matching that ID was found")

        appointment = Appointment(
            **data.model_dump(mode="json", exclude={"doctor_id", "patient_id", "day", "patient_date_of_birth"}),
            day=data.day,
            patient_date_of_birth=data.patient_date_of_birth,
            doctor_id=specialist.id,
            patient_id=data.patient_id,
            status="pending",
        )
        self.session.add(appointment)
        await self.session.commit()
        await self.session.refresh(appointment)
        return appointment

    async def update_appointment(self, appointment_id: UUID, data: AppointmentUpdate, identity: CurrentIdentity) -> Appointment:
        appointment = await self.get_appointment(appointment_id)
        self.ensure_participant(appointment, identity)

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(appointment, key, value.value if hasattr(value, "value") else value)
        return await self._save(appointment)

    def _transition(self, appointment: Appointment, action: AppointmentAction) -> None:
        try:
            appointment.status = next_status(appointment.status, action).value
        except InvalidTransition as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

    async def reschedule(self, appointment_id: UUID, data: AppointmentReschedule, identity: CurrentIdentity) -> Appointment:
        appointment = await self.get_appointment(appointment_id)
        self.ensure_participant(appointment, identity)

        self._transition(appointment, AppointmentAction.RESCHEDULE)
        appointment.day = data.day
        appointment.time = data.time
        appointment.specialist_note = data.specialist_note
        return await self._save(appointment)

    async def cancel(self, appointment_id: UUID, data: AppointmentCancel, identity: CurrentIdentity) -> Appointment:
        appointment = await self.get_appointment(appointment_id)
        self.ensure_participant(appointment, identity)

        self._transition(appointment, AppointmentAction.CANCEL)
        appointment.specialist_note = data.specialist_note
        return await self._save(appointment)

    async def approve(self, appointment_id: UUID, identity: CurrentIdentity) -> Appointment:
        appointment = await self.get_appointment(appointment_id)
        if appointment.doctor_id != identity.id and not identity.is_admin:
            raise HTTPException(status_code=403, detail="Only the appointment's specialist can approve it")

        self._transition(appointment, AppointmentAction.APPROVE)
        return await self._save(appointment)

    async def complete(self, appointment_id: UUID) -> Appointment:
        """Administrative transition; not exposed over HTTP."""
        appointment = await self.get_appointment(appointment_id)
        self._transition(appointment, AppointmentAction.COMPLETE)
        return await self._save(appointment)

    async def add_review(self, appointment_id: UUID, data: ReviewCreate, identity: CurrentIdentity) -> Appointment:
        appointment = await self.get_appointment(appointment_id)
        if appointment.patient_id != identity.id:
            raise HTTPException(status_code=403, detail="Only the patient can review this appointment")

        now = utcnow().isoformat()
        review = {**data.model_dump(), "user_id": str(identity.id), "created_at": now, "updated_at": now}
        appointment.reviews = [*(appointment.reviews or []), review]
        return await self._save(appointment)

    async def delete_appointment(self, appointment_id: UUID) -> None:
        appointment = await self.get_appointment(appointment_id)
        await self.session.delete(appointment)
        await self.session.commit()
        logger.info(f"Appointment {appointment_id} deleted")

    async def _save(self, appointment: Appointment) -> Appointment:
        appointment.updated_at = utcnow()
        self.session.add(appointment)
        await self.session.commit()
        await self.session.refresh(appointment)
        return appointment

    async def get_patient_appointments(self, patient_id: UUID) -> List[Appointment]:
        stmt = select(Appointment).where(Appointment.patient_id == patient_id).order_by(Appointment.created_at)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_doctor_appointments(self, doctor_id: UUID) -> List[Appointment]:
        stmt = select(Appointment).where(Appointment.doctor_id == doctor_id).order_by(Appointment.created_at)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_appointments(self, skip: int = 0, limit: int = 100) -> List[Appointment]:
        stmt = select(Appointment).order_by(Appointment.created_at).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_my_doctors(self, patient_id: UUID) -> List[DoctorSummary]:
        appointments = await self.get_patient_appointments(patient_id)
        # Distinct, in the order they were first seen
        doctor_ids = list(dict.fromkeys(a.doctor_id for a in appointments if a.doctor_id))
        summaries = await self.directory.doctor_summaries(doctor_ids)
        return [summaries[doctor_id] for doctor_id in doctor_ids if doctor_id in summaries]

    async def to_responses(self, appointments: List[Appointment]) -> List[AppointmentResponse]:
        doctors = await self.directory.doctor_summaries(a.doctor_id for a in appointments)
        patients = await self.directory.patient_summaries(a.patient_id for a in appointments)
        return [build_response(a, doctors.get(a.doctor_id), patients.get(a.patient_id)) for a in appointments]

    async def to_response(self, appointment: Appointment) -> AppointmentResponse:
        return (await self.to_responses([appointment]))[0]

def build_response(appointment: Appointment, doctor=None, patient=None) -> AppointmentResponse:
    # end_time is derived on every read and never stored
    end_time, ends_next_day = None, False
    if appointment.time:
        end_time, ends_next_day = compute_end_time(appointment.time, appointment.appointment_duration)

    data = appointment.model_dump()
    data.update(end_time=end_time, ends_next_day=ends_next_day, doctor=doctor, patient=patient)
    return AppointmentResponse.model_validate(data)
