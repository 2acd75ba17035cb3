from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

class AppointmentCreate(BaseModel):
    appointment_date: datetime
    # Taken from the path on the nested hospital route
    hospital_id: Optional[int] = None
    # Admins may book on behalf of another user
    user_id: Optional[int] = None

class AppointmentUpdate(BaseModel):
    appointment_date: Optional[datetime] = None
    hospital_id: Optional[int] = None

class HospitalSummary(BaseModel):
    id: int
    name: str
    province: Optional[str] = None
    tel: Optional[str] = None

    class Config:
        from_attributes = True

class AppointmentResponse(BaseModel):
    id: int
    appointment_date: datetime
    user_id: int
    hospital_id: int
    hospital: Optional[HospitalSummary] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AppointmentEnvelope(BaseModel):
    success: bool = True
    data: AppointmentResponse

class AppointmentListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[AppointmentResponse]
