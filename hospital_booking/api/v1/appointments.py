from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import Identity
from ...api.deps import get_current_identity
from ...services.appointment_service import AppointmentService
from ...schemas.appointment import (
    AppointmentCreate, AppointmentUpdate, AppointmentResponse,
    AppointmentEnvelope, AppointmentListResponse
)
from ...schemas.auth import MessageResponse

router = APIRouter(prefix="/appointments", tags=["Appointments"])

# Hospital-scoped listing and booking
hospital_router = APIRouter(
    prefix="/hospitals/{hospital_id}/appointments",
    tags=["Appointments"]
)

def _list_response(appointments) -> AppointmentListResponse:
    return AppointmentListResponse(
        count=len(appointments),
        data=[AppointmentResponse.from_orm(appointment) for appointment in appointments]
    )

@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """List the caller's appointments, or every appointment for an admin."""
    return _list_response(AppointmentService(db).list_appointments(identity))

@router.post("", response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """Book an appointment; the hospital is given in the body."""
    appointment = AppointmentService(db).create_appointment(identity, appointment_data)
    return AppointmentEnvelope(data=AppointmentResponse.from_orm(appointment))

@router.get("/{appointment_id}", response_model=AppointmentEnvelope)
async def get_appointment(
    appointment_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    appointment = AppointmentService(db).get_appointment(identity, appointment_id)
    return AppointmentEnvelope(data=AppointmentResponse.from_orm(appointment))

@router.put("/{appointment_id}", response_model=AppointmentEnvelope)
async def update_appointment(
    appointment_id: int,
    appointment_data: AppointmentUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    appointment = AppointmentService(db).update_appointment(
        identity, appointment_id, appointment_data
    )
    return AppointmentEnvelope(data=AppointmentResponse.from_orm(appointment))

@router.delete("/{appointment_id}", response_model=MessageResponse)
async def delete_appointment(
    appointment_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    AppointmentService(db).delete_appointment(identity, appointment_id)
    return MessageResponse(message=f"Appointment {appointment_id} deleted")

@hospital_router.get("", response_model=AppointmentListResponse)
async def list_hospital_appointments(
    hospital_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """List appointments at one hospital, scoped to the caller unless admin."""
    return _list_response(
        AppointmentService(db).list_appointments(identity, hospital_id=hospital_id)
    )

@hospital_router.post("", response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_hospital_appointment(
    hospital_id: int,
    appointment_data: AppointmentCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """Book an appointment at the hospital named in the path."""
    appointment = AppointmentService(db).create_appointment(
        identity, appointment_data, hospital_id=hospital_id
    )
    return AppointmentEnvelope(data=AppointmentResponse.from_orm(appointment))
