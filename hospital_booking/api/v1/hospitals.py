from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.config import Settings
from ...core.database import get_db
from ...core.security import Identity
from ...api.deps import get_admin_identity, get_settings
from ...services.hospital_service import HospitalService
from ...schemas.hospital import (
    HospitalCreate, HospitalUpdate, HospitalResponse, HospitalEnvelope,
    HospitalListResponse, VaccineCenterResponse, VaccineCenterListResponse
)
from ...schemas.auth import MessageResponse

router = APIRouter(prefix="/hospitals", tags=["Hospitals"])

def get_hospital_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> HospitalService:
    return HospitalService(db, delete_policy=settings.HOSPITAL_DELETE_POLICY)

@router.get("", response_model=HospitalListResponse)
async def list_hospitals(service: HospitalService = Depends(get_hospital_service)):
    """Returns the list of all the hospitals."""
    hospitals = service.list_hospitals()
    return HospitalListResponse(
        count=len(hospitals),
        data=[HospitalResponse.from_orm(hospital) for hospital in hospitals]
    )

# Registered before /{hospital_id} so the literal path wins
@router.get("/vacCenters", response_model=VaccineCenterListResponse)
async def list_vaccine_centers(service: HospitalService = Depends(get_hospital_service)):
    """Returns the hospitals usable as vaccination centers."""
    centers = service.list_vaccine_centers()
    return VaccineCenterListResponse(
        count=len(centers),
        data=[VaccineCenterResponse.from_orm(center) for center in centers]
    )

@router.get("/{hospital_id}", response_model=HospitalEnvelope)
async def get_hospital(
    hospital_id: int,
    service: HospitalService = Depends(get_hospital_service)
):
    """Get the hospital by id."""
    return HospitalEnvelope(data=HospitalResponse.from_orm(service.get_hospital(hospital_id)))

@router.post("", response_model=HospitalEnvelope, status_code=status.HTTP_201_CREATED)
async def create_hospital(
    hospital_data: HospitalCreate,
    _: Identity = Depends(get_admin_identity),
    service: HospitalService = Depends(get_hospital_service)
):
    """Create a new hospital (admin only)."""
    hospital = service.create_hospital(hospital_data)
    return HospitalEnvelope(data=HospitalResponse.from_orm(hospital))

@router.put("/{hospital_id}", response_model=HospitalEnvelope)
async def update_hospital(
    hospital_id: int,
    hospital_data: HospitalUpdate,
    _: Identity = Depends(get_admin_identity),
    service: HospitalService = Depends(get_hospital_service)
):
    """Update the hospital by id (admin only)."""
    hospital = service.update_hospital(hospital_id, hospital_data)
    return HospitalEnvelope(data=HospitalResponse.from_orm(hospital))

@router.delete("/{hospital_id}", response_model=MessageResponse)
async def delete_hospital(
    hospital_id: int,
    _: Identity = Depends(get_admin_identity),
    service: HospitalService = Depends(get_hospital_service)
):
    """Remove the hospital by id (admin only)."""
    service.delete_hospital(hospital_id)
    return MessageResponse(message=f"Hospital {hospital_id} deleted")
