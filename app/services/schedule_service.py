from datetime import date
from typing import List
from uuid import UUID

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.availability import booked_window, free_intervals_by_place
from app.core.lifecycle import ACTIVE_STATUSES
from app.core.logger import get_logger
from app.core.security import CurrentIdentity
from app.core.utils import utcnow, weekday_name
from app.db.models import Appointment, Schedule, Specialist
from app.schemas.schedule import (
    AvailabilityResponse,
    FreeInterval,
    OverrideCreate,
    ScheduleBase,
    ScheduleCreate,
    ScheduleUpdate,
)

logger = get_logger("schedules")

_WORKDAY = [{"start_time": "09:00", "end_time": "16:00"}]

DEFAULT_SCHEDULE = {
    "days_of_week": {
        "Monday": _WORKDAY,
        "Tuesday": _WORKDAY,
        "Wednesday": _WORKDAY,
        "Thursday": _WORKDAY,
        "Friday": _WORKDAY,
        "Saturday": [],
        "Sunday": [],
    },
    "timezone": "Africa/Douala",
    "appointment_types": ["Consultation", "Follow-up"],
    "notes": "This is my default availability",
    "location": "Online",
    "title": "Working Hours",
    "is_default": True,
}

class ScheduleService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_specialist_or_404(self, specialist_id: UUID) -> Specialist:
        specialist = await self.session.get(Specialist, specialist_id)
        if not specialist:
            raise HTTPException(status_code=404, detail="There is no specialist, with that ID")
        return specialist

    async def get_schedule(self, schedule_id: UUID) -> Schedule:
        schedule = await self.session.get(Schedule, schedule_id)
        if not schedule:
            raise HTTPException(status_code=404, detail="Schedule not found")
        return schedule

    def ensure_owner(self, schedule: Schedule, identity: CurrentIdentity) -> None:
        if schedule.doctor_id != identity.id and not identity.is_admin:
            raise HTTPException(status_code=403, detail="You can only manage your own schedules")

    async def create_schedule(self, doctor_id: UUID, data: ScheduleCreate, commit: bool = True) -> Schedule:
        await self.get_specialist_or_404(doctor_id)

        schedule = Schedule(doctor_id=doctor_id, **data.model_dump(mode="json", exclude={"is_default"}))
        self.session.add(schedule)
        await self.session.flush()
        if data.is_default:
            await self._set_default(schedule)

        if commit:
            await self.session.commit()
            await self.session.refresh(schedule)
        logger.info(f"Schedule {schedule.id} created for specialist {doctor_id}")
        return schedule

    async def provision_default_schedule(self, doctor_id: UUID, commit: bool = True) -> Schedule:
        return await self.create_schedule(
            doctor_id, ScheduleCreate.model_validate(DEFAULT_SCHEDULE), commit=commit
        )

    async def list_schedules(self, doctor_id: UUID) -> List[Schedule]:
        # Insertion order
        stmt = select(Schedule).where(Schedule.doctor_id == doctor_id).order_by(Schedule.created_at)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_doctor_schedules(self, doctor_id: UUID) -> List[Schedule]:
        await self.get_specialist_or_404(doctor_id)
        return await self.list_schedules(doctor_id)

    async def update_schedule(self, schedule_id: UUID, schedule_update: ScheduleUpdate, identity: CurrentIdentity) -> Schedule:
        schedule = await self.get_schedule(schedule_id)
        self.ensure_owner(schedule, identity)

        update_data = schedule_update.model_dump(mode="json", exclude_unset=True)
        current = {
            "title": schedule.title,
            "days_of_week": schedule.days_of_week,
            "timezone": schedule.timezone,
            "location": schedule.location,
            "appointment_types": schedule.appointment_types,
            "notes": schedule.notes,
            "is_active": schedule.is_active,
            "overrides": schedule.overrides,
        }
        merged = self._validated({**current, **update_data})

        for key in update_data:
            setattr(schedule, key, merged[key])
        schedule.updated_at = utcnow()

        self.session.add(schedule)
        await self.session.commit()
        await self.session.refresh(schedule)
        return schedule

    async def delete_schedule(self, schedule_id: UUID, identity: CurrentIdentity) -> None:
        schedule = await self.get_schedule(schedule_id)
        self.ensure_owner(schedule, identity)
        await self.session.delete(schedule)
        await self.session.commit()
        logger.info(f"Schedule {schedule_id} deleted")

    async def add_override(self, schedule_id: UUID, override: OverrideCreate, identity: CurrentIdentity) -> Schedule:
        schedule = await self.get_schedule(schedule_id)
        self.ensure_owner(schedule, identity)

        # Reassign so the JSON column is flagged dirty
        schedule.overrides = [*(schedule.overrides or []), override.model_dump(mode="json")]
        schedule.updated_at = utcnow()

        self.session.add(schedule)
        await self.session.commit()
        await self.session.refresh(schedule)
        return schedule

    async def mark_default(self, schedule_id: UUID, identity: CurrentIdentity) -> Schedule:
        schedule = await self.get_schedule(schedule_id)
        self.ensure_owner(schedule, identity)
        await self._set_default(schedule)
        await self.session.commit()
        await self.session.refresh(schedule)
        return schedule

    async def _set_default(self, schedule: Schedule) -> None:
        # Clear and set in the same transaction so only one default remains
        await self.session.execute(
            update(Schedule)
            .where(Schedule.doctor_id == schedule.doctor_id, Schedule.id != schedule.id)
            .values(is_default=False)
        )
        schedule.is_default = True
        schedule.updated_at = utcnow()
        self.session.add(schedule)

    async def get_availability(self, doctor_id: UUID, day: date) -> AvailabilityResponse:
        schedules = await self.list_doctor_schedules(doctor_id)

        stmt = select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.day == day,
            Appointment.status.in_([s.value for s in ACTIVE_STATUSES]),
        )
        result = await self.session.execute(stmt)
        booked = [
            booked_window(appointment.time, appointment.appointment_duration)
            for appointment in result.scalars().all()
            if appointment.time
        ]

        intervals = []
        for schedule in schedules:
            if not schedule.is_active:
                continue
            for place, free in free_intervals_by_place(schedule.days_of_week, schedule.overrides, day, booked):
                source = place or {"location": schedule.location, "timezone": schedule.timezone}
                intervals.extend(
                    FreeInterval(
                        schedule_id=schedule.id,
                        location=source["location"],
                        timezone=source["timezone"],
                        is_override=place is not None,
                        **interval,
                    )
                    for interval in free
                )

        intervals.sort(key=lambda i: (i.start_time, i.end_time))
        return AvailabilityResponse(
            doctor_id=doctor_id, date=day, weekday=weekday_name(day), intervals=intervals
        )

    @staticmethod
    def _validated(data: dict) -> dict:
        try:
            return ScheduleBase.model_validate(data).model_dump(mode="json")
        except ValidationError as exc:
            messages = "; ".join(error["msg"] for error in exc.errors())
            raise HTTPException(status_code=400, detail=f"Invalid schedule: {messages}") from exc
