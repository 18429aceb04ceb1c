from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_current_doctor_profile, get_doctor_user
from ...models.doctor import DoctorProfile
from ...models.user import User
from ...schemas.chamber import ChamberResponse
from ...schemas.doctor import DoctorPublic, DoctorProfileResponse, DoctorProfileUpdate, VisibilityUpdate
from ...services.chamber_service import ChamberService
from ...services.doctor_service import DoctorDirectoryService
from ...services.verification_service import VerificationService

router = APIRouter(prefix="/doctors", tags=["Doctors"])


# Public directory

@router.get("", response_model=List[DoctorPublic])
async def list_doctors(
    q: Optional[str] = None,
    specialization: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Search approved, active doctors."""
    return DoctorDirectoryService(db).search(q=q, specialization=specialization, skip=skip, limit=limit)


@router.get("/featured", response_model=List[DoctorPublic])
async def featured_doctors(db: Session = Depends(get_db)):
    return DoctorDirectoryService(db).featured()


@router.get("/verify", response_model=DoctorPublic)
async def verify_registration(
    registration_number: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    """Public registration-number lookup."""
    return DoctorDirectoryService(db).verify_registration(registration_number)


# Doctor self-service; declared before /{doctor_id} so "me" is not parsed as an id

@router.get("/me", response_model=DoctorProfileResponse)
async def my_profile(doctor: DoctorProfile = Depends(get_current_doctor_profile)):
    """Own profile, including pending or rejected verification state."""
    return doctor


@router.patch("/me", response_model=DoctorProfileResponse)
async def update_my_profile(
    data: DoctorProfileUpdate,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    return DoctorDirectoryService(db).update_own_profile(current_user.id, data)


@router.patch("/me/visibility", response_model=DoctorProfileResponse)
async def update_my_visibility(
    data: VisibilityUpdate,
    doctor: DoctorProfile = Depends(get_current_doctor_profile),
    db: Session = Depends(get_db)
):
    """Hide or show oneself in the directory."""
    return VerificationService(db).set_active(doctor.id, doctor.user_id, data.is_active)


@router.get("/{doctor_id}", response_model=DoctorPublic)
async def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    return DoctorDirectoryService(db).get_public(doctor_id)


@router.get("/{doctor_id}/chambers", response_model=List[ChamberResponse])
async def get_doctor_chambers(doctor_id: int, db: Session = Depends(get_db)):
    """Chambers of a publicly bookable doctor, for the booking screen."""
    doctor = DoctorDirectoryService(db).get_public(doctor_id)
    return ChamberService(db).list_chambers(doctor.id)
