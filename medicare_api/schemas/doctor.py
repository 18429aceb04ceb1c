from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from ..models.doctor import VerificationStatus


class DoctorPublic(BaseModel):
    """Listing view; never exposes verification internals."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    specialization: str
    registration_number: str
    hospital_affiliation: Optional[str] = None
    experience_years: Optional[int] = None
    is_featured: bool = False
    featured_rank: Optional[int] = None


class DoctorProfileResponse(DoctorPublic):
    user_id: int
    email: str
    phone: Optional[str] = None
    verification_status: VerificationStatus
    rejection_reason: Optional[str] = None
    is_active: bool
    is_publicly_bookable: bool
    created_at: Optional[datetime] = None


class DoctorProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    specialization: Optional[str] = Field(None, min_length=1, max_length=100)
    hospital_affiliation: Optional[str] = Field(None, max_length=255)
    experience_years: Optional[int] = Field(None, ge=0, le=80)
    phone: Optional[str] = Field(None, max_length=20)


class VerificationUpdate(BaseModel):
    status: VerificationStatus
    rejection_reason: Optional[str] = None


class VisibilityUpdate(BaseModel):
    is_active: bool


class FeaturedUpdate(BaseModel):
    is_featured: bool
    featured_rank: Optional[int] = Field(None, ge=1)


class VerificationResult(BaseModel):
    doctor: DoctorProfileResponse
    warnings: List[str] = []
