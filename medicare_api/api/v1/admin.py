from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...core.exceptions import NotFoundError
from ...api.deps import get_admin_user, get_notifier
from ...models.doctor import VerificationStatus
from ...models.user import User, UserRoleMembership, AppRole
from ...schemas.chamber import ChamberFields, ChamberResponse
from ...schemas.doctor import (
    DoctorProfileResponse, VerificationUpdate, VerificationResult, VisibilityUpdate, FeaturedUpdate
)
from ...services.chamber_service import ChamberService
from ...services.notification_service import NotificationService
from ...services.role_resolver import RoleResolver
from ...services.verification_service import VerificationService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/doctors", response_model=List[DoctorProfileResponse])
async def list_all_doctors(
    verification_status: Optional[VerificationStatus] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """All doctors regardless of verification or visibility."""
    return VerificationService(db).list_doctors(current_user.id, verification_status, skip, limit)


@router.patch("/doctors/{doctor_id}/verification", response_model=VerificationResult)
async def review_doctor(
    doctor_id: int,
    data: VerificationUpdate,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier)
):
    """Approve or reject a doctor; the doctor is emailed on a best-effort basis."""
    doctor, warnings = await VerificationService(db, notifier).review(
        doctor_id, current_user.id, data.status, data.rejection_reason
    )
    return VerificationResult(doctor=DoctorProfileResponse.model_validate(doctor), warnings=warnings)


@router.patch("/doctors/{doctor_id}/visibility", response_model=DoctorProfileResponse)
async def set_doctor_visibility(
    doctor_id: int,
    data: VisibilityUpdate,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return VerificationService(db).set_active(doctor_id, current_user.id, data.is_active)


@router.patch("/doctors/{doctor_id}/featured", response_model=DoctorProfileResponse)
async def set_doctor_featured(
    doctor_id: int,
    data: FeaturedUpdate,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return VerificationService(db).set_featured(
        doctor_id, current_user.id, data.is_featured, data.featured_rank
    )


@router.delete("/doctors/{doctor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_doctor(
    doctor_id: int,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    VerificationService(db).delete_doctor(doctor_id, current_user.id)


@router.post(
    "/doctors/{doctor_id}/chambers",
    response_model=ChamberResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_doctor_chamber(
    doctor_id: int,
    fields: ChamberFields,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return ChamberService(db).add_chamber(doctor_id, current_user.id, fields)


@router.get("/doctors/{doctor_id}/chambers", response_model=List[ChamberResponse])
async def list_doctor_chambers(
    doctor_id: int,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return ChamberService(db).list_chambers(doctor_id)


@router.post("/users/{user_id}/roles/admin", status_code=status.HTTP_201_CREATED)
async def grant_admin_role(
    user_id: int,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Record admin membership for another principal."""
    if not db.query(User).filter(User.id == user_id).first():
        raise NotFoundError("User")

    if not RoleResolver(db).is_admin(user_id):
        db.add(UserRoleMembership(user_id=user_id, role=AppRole.ADMIN))
        db.commit()

    return {"message": "Admin role granted", "user_id": user_id}
