from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import CurrentIdentity, InvalidToken, decode_identity
from app.db.session import get_session
from app.services.appointment_service import AppointmentService
from app.services.chat_service import ChatService
from app.services.schedule_service import ScheduleService
from app.services.specialist_service import SpecialistService
from app.services.storage_service import StorageService, get_storage_service

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=settings.AUTH_TOKEN_URL)

async def get_current_identity(token: str = Depends(oauth2_scheme)) -> CurrentIdentity:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        return decode_identity(token)
    except InvalidToken:
        raise credentials_exception

def require_role(*roles: str):
    async def checker(identity: CurrentIdentity = Depends(get_current_identity)) -> CurrentIdentity:
        if identity.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have access to this section.",
            )
        return identity
    return checker

async def get_schedule_service(session: AsyncSession = Depends(get_session)) -> ScheduleService:
    return ScheduleService(session)

async def get_appointment_service(session: AsyncSession = Depends(get_session)) -> AppointmentService:
    return AppointmentService(session)

async def get_specialist_service(session: AsyncSession = Depends(get_session)) -> SpecialistService:
    return SpecialistService(session)

async def get_chat_service(
    session: AsyncSession = Depends(get_session),
    storage: StorageService = Depends(get_storage_service),
) -> ChatService:
    return ChatService(session, storage)
