from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date

from .appointment import AppointmentResponse


class PatientProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    full_name: str
    email: str
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None


class PatientProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(None, max_length=20)
    blood_group: Optional[str] = Field(None, max_length=10)
    weight: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)
    address: Optional[str] = Field(None, max_length=255)
    emergency_contact: Optional[str] = Field(None, max_length=100)


class PatientSummary(BaseModel):
    patient_id: int
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    total_visits: int
    first_visit: date
    last_visit: date
    appointments: List[AppointmentResponse] = []
