from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_doctor_profile, get_current_user
from ...models.doctor import DoctorProfile
from ...models.user import User
from ...schemas.chamber import ChamberFields, ChamberResponse
from ...services.chamber_service import ChamberService

router = APIRouter(tags=["Chambers"])


@router.get("/doctors/me/chambers", response_model=List[ChamberResponse])
async def list_my_chambers(
    doctor: DoctorProfile = Depends(get_current_doctor_profile),
    db: Session = Depends(get_db)
):
    return ChamberService(db).list_chambers(doctor.id)


@router.post("/doctors/me/chambers", response_model=ChamberResponse, status_code=status.HTTP_201_CREATED)
async def add_my_chamber(
    fields: ChamberFields,
    doctor: DoctorProfile = Depends(get_current_doctor_profile),
    db: Session = Depends(get_db)
):
    return ChamberService(db).add_chamber(doctor.id, doctor.user_id, fields)


@router.put("/chambers/{chamber_id}", response_model=ChamberResponse)
async def update_chamber(
    chamber_id: int,
    fields: ChamberFields,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Owning doctor or admin."""
    return ChamberService(db).update_chamber(chamber_id, current_user.id, fields)


@router.delete("/chambers/{chamber_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chamber(
    chamber_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ChamberService(db).delete_chamber(chamber_id, current_user.id)
