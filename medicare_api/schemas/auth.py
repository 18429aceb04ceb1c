from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import date, datetime

from ..core.security import Role


def _check_password_strength(value: str) -> str:
    if not any(c.isupper() for c in value) or not any(c.isdigit() for c in value):
        raise ValueError("Password must contain an uppercase letter and a digit")
    return value


class _Registration(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    full_name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return _check_password_strength(v)


class PatientRegister(_Registration):
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(None, max_length=20)


class DoctorRegister(_Registration):
    specialization: str = Field(..., min_length=1, max_length=100)
    registration_number: str = Field(..., min_length=1, max_length=50)
    hospital_affiliation: Optional[str] = Field(None, max_length=255)
    experience_years: Optional[int] = Field(None, ge=0, le=80)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    is_active: bool
    created_at: Optional[datetime] = None


class MeResponse(UserResponse):
    role: Role


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class AuthorizeResponse(BaseModel):
    decision: str
    role: Role
