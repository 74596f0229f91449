from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status

from app.api.deps import get_appointment_service, get_current_identity, require_role
from app.core.security import CurrentIdentity
from app.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreateAdmin,
    AppointmentCreatePatient,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentUpdate,
    DoctorSummary,
    MyDoctorsResponse,
    PatientSummary,
    ReviewCreate,
)
from app.services.appointment_service import AppointmentService, build_response
from app.services.notification_service import (
    NotificationService,
    dispatch_appointment_confirmation,
    get_notification_service,
)

router = APIRouter()

async def list_response(appointments, service: AppointmentService) -> AppointmentListResponse:
    docs = await service.to_responses(appointments)
    return AppointmentListResponse(results=len(docs), docs=docs)

@router.post("/", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: AppointmentCreatePatient,
    background_tasks: BackgroundTasks,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: AppointmentService = Depends(get_appointment_service),
    notifications: NotificationService = Depends(get_notification_service),
):
    appointment, patient, specialist = await service.create_appointment_patient(request, identity.id)

    # Runs after the response; failures are logged, the booking stands
    background_tasks.add_task(
        dispatch_appointment_confirmation,
        notifications,
        recipient_email=patient.email,
        username=patient.name,
        specialist_name=specialist.display_name,
        day=appointment.day,
        time=appointment.time,
    )
    return build_response(
        appointment,
        doctor=DoctorSummary.model_validate(specialist),
        patient=PatientSummary.model_validate(patient),
    )

@router.post("/new", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment_admin(
    request: AppointmentCreateAdmin,
    identity: CurrentIdentity = Depends(require_role("doctor", "admin")),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.create_appointment_admin(request)
    return await service.to_response(appointment)

@router.get("/", response_model=AppointmentListResponse)
async def read_appointments(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    identity: CurrentIdentity = Depends(require_role("admin")),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await list_response(await service.get_appointments(skip=skip, limit=limit), service)

@router.get("/my-appointments", response_model=AppointmentListResponse)
async def read_my_appointments(
    identity: CurrentIdentity = Depends(get_current_identity),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await list_response(await service.get_patient_appointments(identity.id), service)

@router.get("/specialist", response_model=AppointmentListResponse)
async def read_specialist_appointments(
    identity: CurrentIdentity = Depends(require_role("doctor")),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await list_response(await service.get_doctor_appointments(identity.id), service)

@router.get("/my-doctors", response_model=MyDoctorsResponse)
async def read_my_doctors(
    identity: CurrentIdentity = Depends(get_current_identity),
    service: AppointmentService = Depends(get_appointment_service),
):
    doctors = await service.get_my_doctors(identity.id)
    return MyDoctorsResponse(results=len(doctors), doctors=doctors)

@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def read_appointment(
    appointment_id: UUID,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.get_appointment(appointment_id)
    service.ensure_participant(appointment, identity)
    return await service.to_response(appointment)

@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: UUID,
    request: AppointmentUpdate,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.update_appointment(appointment_id, request, identity)
    return await service.to_response(appointment)

@router.patch("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: UUID,
    request: AppointmentReschedule,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.reschedule(appointment_id, request, identity)
    return await service.to_response(appointment)

@router.patch("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: UUID,
    request: AppointmentCancel,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.cancel(appointment_id, request, identity)
    return await service.to_response(appointment)

@router.patch("/{appointment_id}/approve", response_model=AppointmentResponse)
async def approve_appointment(
    appointment_id: UUID,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.approve(appointment_id, identity)
    return await service.to_response(appointment)

@router.post("/{appointment_id}/reviews", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def add_review(
    appointment_id: UUID,
    request: ReviewCreate,
    identity: CurrentIdentity = Depends(get_current_identity),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.add_review(appointment_id, request, identity)
    return await service.to_response(appointment)

@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: UUID,
    identity: CurrentIdentity = Depends(require_role("admin")),
    service: AppointmentService = Depends(get_appointment_service),
):
    await service.delete_appointment(appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
