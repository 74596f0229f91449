from fastapi import APIRouter
from app.api.v1 import appointments, chats, schedules, specialists, ws

api_router = APIRouter()

api_router.include_router(specialists.router, prefix="/specialists", tags=["specialists"])
api_router.include_router(schedules.router, prefix="/schedules", tags=["schedules"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
api_router.include_router(chats.router, prefix="/chat", tags=["chat"])
api_router.include_router(ws.router, tags=["realtime"])
