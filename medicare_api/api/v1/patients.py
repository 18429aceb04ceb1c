from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.exceptions import NotFoundError
from ...api.deps import get_patient_user
from ...models.user import User
from ...schemas.patient import PatientProfileResponse, PatientProfileUpdate
from ...services.role_resolver import RoleResolver

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.get("/me", response_model=PatientProfileResponse)
async def my_profile(
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    profile = RoleResolver(db).get_patient_profile(current_user.id)
    if not profile:
        raise NotFoundError("Patient profile")
    return profile


@router.patch("/me", response_model=PatientProfileResponse)
async def update_my_profile(
    data: PatientProfileUpdate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    profile = RoleResolver(db).get_patient_profile(current_user.id)
    if not profile:
        raise NotFoundError("Patient profile")

    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "full_name" and not value:
            continue
        setattr(profile, field, value)

    db.commit()
    db.refresh(profile)
    return profile
