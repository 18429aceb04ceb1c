from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_current_doctor_profile, get_current_user, get_patient_user
from ...models.appointment import AppointmentStatus
from ...models.doctor import DoctorProfile
from ...models.user import User
from ...schemas.appointment import (
    AppointmentCreate, AppointmentResponse, AppointmentBoard, PatientAppointments, StatusUpdate
)
from ...schemas.patient import PatientSummary
from ...services.appointment_service import AppointmentService
from ...services.patient_history import PatientHistoryService

router = APIRouter(tags=["Appointments"])


@router.post("/appointments", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    """Book an appointment with an approved, active doctor."""
    service = AppointmentService(db)
    appointment = service.create_appointment(current_user.id, data)
    return service.serialize([appointment])[0]


@router.get("/appointments/me", response_model=PatientAppointments)
async def my_appointments(
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).list_for_patient(current_user.id)


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    service = AppointmentService(db)
    appointment = service.get_for_party(appointment_id, current_user.id)
    return service.serialize([appointment])[0]


@router.patch("/appointments/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    data: StatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Confirm, complete, mark no-show (doctor) or cancel (doctor or patient)."""
    service = AppointmentService(db)
    appointment = service.update_status(appointment_id, current_user.id, data.status, data.notes)
    return service.serialize([appointment])[0]


@router.get("/doctors/me/appointments", response_model=AppointmentBoard)
async def my_appointment_board(
    search: Optional[str] = None,
    status_filter: Optional[AppointmentStatus] = None,
    on_date: Optional[date] = None,
    doctor: DoctorProfile = Depends(get_current_doctor_profile),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).list_for_doctor(
        doctor.id, doctor.user_id, search=search, status=status_filter, on_date=on_date
    )


@router.get("/doctors/me/patients", response_model=List[PatientSummary])
async def my_patients(
    search: Optional[str] = None,
    sort_by: str = "recent",
    doctor: DoctorProfile = Depends(get_current_doctor_profile),
    db: Session = Depends(get_db)
):
    return PatientHistoryService(db).list_patient_history(
        doctor.id, doctor.user_id, search=search, sort_by=sort_by
    )
