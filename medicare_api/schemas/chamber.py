from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from decimal import Decimal

from ..models.chamber import Weekday


class ChamberFields(BaseModel):
    # Emptiness of name/address is reported by the registry as a field error
    name: str = Field("", max_length=200)
    address: str = Field("", max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    days: List[Weekday] = []
    timing: Optional[str] = Field(None, max_length=100)
    appointment_fee: Optional[Decimal] = Field(None, ge=0)
    serial_available: bool = True


class ChamberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    name: str
    address: str
    phone: Optional[str] = None
    days: List[Weekday] = []
    timing: Optional[str] = None
    appointment_fee: Optional[Decimal] = None
    serial_available: bool


class ChamberSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: str
    timing: Optional[str] = None
    appointment_fee: Optional[Decimal] = None
