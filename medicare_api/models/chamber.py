from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Numeric, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base


class Weekday(str, enum.Enum):
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"


class Chamber(Base):
    """A doctor's practice location with its own schedule metadata."""
    __tablename__ = "doctor_chambers"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    address = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    days = Column(JSON, nullable=False, default=list)
    timing = Column(String(100), nullable=True)
    appointment_fee = Column(Numeric(10, 2), nullable=True)
    serial_available = Column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("DoctorProfile", back_populates="chambers")

    def __repr__(self):
        return f"<Chamber(id={self.id}, doctor_id={self.doctor_id}, name='{self.name}')>"
