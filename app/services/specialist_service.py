from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.logger import get_logger
from app.db.models import Specialist
from app.schemas.schedule import ScheduleResponse
from app.schemas.specialist import SpecialistCreate, SpecialistCreatedResponse, SpecialistResponse
from app.services.schedule_service import ScheduleService

logger = get_logger("specialists")

class SpecialistService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_specialist(self, data: SpecialistCreate) -> SpecialistCreatedResponse:
        # 1. Reject duplicate emails
        stmt = select(Specialist).where(Specialist.email == data.email)
        result = await self.session.execute(stmt)
        if result.scalars().first():
            raise HTTPException(status_code=400, detail="A specialist with that email already exists")

        # 2. Create Specialist
        specialist = Specialist(**data.model_dump())
        self.session.add(specialist)
        await self.session.flush()

        # 3. Provision the default Monday-Friday schedule in the same transaction
        schedule = await ScheduleService(self.session).provision_default_schedule(specialist.id, commit=False)

        await self.session.commit()
        await self.session.refresh(specialist)
        await self.session.refresh(schedule)
        logger.info(f"Specialist {specialist.id} onboarded with default schedule {schedule.id}")

        return SpecialistCreatedResponse(
            specialist=SpecialistResponse.model_validate(specialist),
            default_schedule=ScheduleResponse.model_validate(schedule),
        )

    async def get_specialist(self, specialist_id: UUID) -> Specialist:
        specialist = await self.session.get(Specialist, specialist_id)
        if not specialist:
            raise HTTPException(status_code=404, detail="There is no specialist, with that ID")
        return specialist
