from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.deps import get_specialist_service
from app.schemas.specialist import SpecialistCreate, SpecialistCreatedResponse, SpecialistResponse
from app.services.specialist_service import SpecialistService

router = APIRouter()

@router.post("/", response_model=SpecialistCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_specialist(
    request: SpecialistCreate,
    service: SpecialistService = Depends(get_specialist_service),
):
    return await service.create_specialist(request)

@router.get("/{specialist_id}", response_model=SpecialistResponse)
async def read_specialist(
    specialist_id: UUID,
    service: SpecialistService = Depends(get_specialist_service),
):
    return await service.get_specialist(specialist_id)
