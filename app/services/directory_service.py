from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.db.models import Specialist, User
from app.schemas.appointment import DoctorSummary, PatientSummary
from app.schemas.chat import ParticipantSummary

class DirectoryService:
    """Lookups against the user and specialist collections."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: UUID) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_specialist(self, specialist_id: UUID) -> Optional[Specialist]:
        return await self.session.get(Specialist, specialist_id)

    async def users_by_id(self, ids: Iterable[UUID]) -> Dict[UUID, User]:
        ids = list(set(ids))
        if not ids:
            return {}
        result = await self.session.execute(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}

    async def specialists_by_id(self, ids: Iterable[UUID]) -> Dict[UUID, Specialist]:
        ids = list(set(ids))
        if not ids:
            return {}
        result = await self.session.execute(select(Specialist).where(Specialist.id.in_(ids)))
        return {specialist.id: specialist for specialist in result.scalars().all()}

    async def participant_summaries(self, ids: Iterable[UUID]) -> Dict[UUID, ParticipantSummary]:
        ids = list(ids)
        summaries = {}
        for user in (await self.users_by_id(ids)).values():
            summaries[user.id] = ParticipantSummary(
                id=user.id, name=user.name, avatar=user.avatar, type="user"
            )
        for specialist in (await self.specialists_by_id(ids)).values():
            summaries[specialist.id] = ParticipantSummary(
                id=specialist.id,
                name=specialist.display_name,
                avatar=specialist.avatar,
                type="specialist",
            )
        return summaries

    async def describe_participants(self, ids: List[UUID]) -> List[ParticipantSummary]:
        summaries = await self.participant_summaries(ids)
        return [summaries.get(pid) or ParticipantSummary(id=pid) for pid in ids]

    async def doctor_summaries(self, ids: Iterable[UUID]) -> Dict[UUID, DoctorSummary]:
        return {
            sid: DoctorSummary.model_validate(specialist)
            for sid, specialist in (await self.specialists_by_id(ids)).items()
        }

    async def patient_summaries(self, ids: Iterable[UUID]) -> Dict[UUID, PatientSummary]:
        return {
            uid: PatientSummary.model_validate(user)
            for uid, user in (await self.users_by_id(i for i in ids if i)).items()
        }
