from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps import get_current_identity, get_schedule_service
from app.core.security import CurrentIdentity
from app.schemas.schedule import (
    AvailabilityResponse,
    OverrideCreate,
    ScheduleCreate,
    ScheduleResponse,
    ScheduleUpdate,
)
from app.services.schedule_service import ScheduleService

router = APIRouter()

@router.post("/", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    request: ScheduleCreate,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.create_schedule(identity.id, request)

@router.get("/", response_model=List[ScheduleResponse])
async def read_my_schedules(
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.list_schedules(identity.id)

@router.get("/doctor/{doctor_id}", response_model=List[ScheduleResponse])
async def read_doctor_schedules(
    doctor_id: UUID,
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.list_doctor_schedules(doctor_id)

@router.get("/doctor/{doctor_id}/availability", response_model=AvailabilityResponse)
async def read_doctor_availability(
    doctor_id: UUID,
    day: date = Query(..., alias="date", description="YYYY-MM-DD"),
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.get_availability(doctor_id, day)

@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def read_schedule(
    schedule_id: UUID,
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.get_schedule(schedule_id)

@router.patch("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: UUID,
    request: ScheduleUpdate,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.update_schedule(schedule_id, request, identity)

@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: UUID,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    await service.delete_schedule(schedule_id, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/{schedule_id}/overrides", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def add_override(
    schedule_id: UUID,
    request: OverrideCreate,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.add_override(schedule_id, request, identity)

@router.patch("/{schedule_id}/default", response_model=ScheduleResponse)
async def mark_default(
    schedule_id: UUID,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: ScheduleService = Depends(get_schedule_service),
):
    return await service.mark_default(schedule_id, identity)
