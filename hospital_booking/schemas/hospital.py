from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

class HospitalBase(BaseModel):
    ordinal: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=50)
    address: str = Field(..., min_length=1, max_length=255)
    district: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=5)
    tel: Optional[str] = Field(None, max_length=20)
    region: Optional[str] = Field(None, max_length=100)
    capacity: Optional[int] = Field(None, ge=1)

class HospitalCreate(HospitalBase):
    pass

class HospitalUpdate(BaseModel):
    ordinal: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    district: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=5)
    tel: Optional[str] = Field(None, max_length=20)
    region: Optional[str] = Field(None, max_length=100)
    capacity: Optional[int] = Field(None, ge=1)

    @field_validator("name", "address")
    @classmethod
    def required_fields_not_cleared(cls, value):
        if value is None:
            raise ValueError("field is required and cannot be cleared")
        return value

class HospitalResponse(HospitalBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class HospitalEnvelope(BaseModel):
    success: bool = True
    data: HospitalResponse

class HospitalListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[HospitalResponse]

class VaccineCenterResponse(BaseModel):
    id: int
    name: str
    tel: Optional[str] = None

    class Config:
        from_attributes = True

class VaccineCenterListResponse(BaseModel):
    success: bool = True
    count: int
    data: List[VaccineCenterResponse]
