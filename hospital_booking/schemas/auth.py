from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from ..core.security import UserRole

# bcrypt only hashes the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72

def check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value

class UserRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return check_password_bytes(value)

class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class ChangePassword(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("new_password")
    @classmethod
    def password_fits_bcrypt(cls, value):
        return check_password_bytes(value)

class UserResponse(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: UserRole
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserEnvelope(BaseModel):
    success: bool = True
    data: UserResponse

class TokenResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_in: int

class MessageResponse(BaseModel):
    success: bool = True
    message: str
