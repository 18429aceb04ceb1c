from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime, time

from ..models.appointment import AppointmentStatus
from .chamber import ChamberSummary

CHAMBER_UNAVAILABLE_LABEL = "Chamber unavailable"


class AppointmentCreate(BaseModel):
    doctor_id: int
    chamber_id: Optional[int] = None
    appointment_date: date
    appointment_time: time
    reason: Optional[str] = Field(None, max_length=2000)


class StatusUpdate(BaseModel):
    status: AppointmentStatus
    notes: Optional[str] = Field(None, max_length=4000)


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    chamber_id: Optional[int] = None
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    chamber: Optional[ChamberSummary] = None
    chamber_unavailable: bool = False
    location_label: Optional[str] = None


class AppointmentBoard(BaseModel):
    today: List[AppointmentResponse] = []
    upcoming: List[AppointmentResponse] = []
    past: List[AppointmentResponse] = []
    cancelled: List[AppointmentResponse] = []
    counts: Dict[str, int] = {}


class PatientAppointments(BaseModel):
    upcoming: List[AppointmentResponse] = []
    past: List[AppointmentResponse] = []
