from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Text, Enum as SQLEnum, and_
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base


class VerificationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DoctorProfile(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Professional information
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)
    specialization = Column(String(100), nullable=False)
    registration_number = Column(String(50), nullable=False, unique=True, index=True)
    hospital_affiliation = Column(String(255), nullable=True)
    experience_years = Column(Integer, nullable=True)
    phone = Column(String(20), nullable=True)

    # Verification and visibility
    verification_status = Column(
        SQLEnum(VerificationStatus), nullable=False, default=VerificationStatus.PENDING
    )
    rejection_reason = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    featured_rank = Column(Integer, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doctor")
    chambers = relationship(
        "Chamber", back_populates="doctor", cascade="all, delete-orphan", order_by="Chamber.id"
    )
    appointments = relationship("Appointment", back_populates="doctor", cascade="all, delete-orphan")

    @property
    def is_publicly_bookable(self) -> bool:
        return self.verification_status == VerificationStatus.APPROVED and bool(self.is_active)

    @classmethod
    def publicly_bookable_clause(cls):
        """SQL form of ``is_publicly_bookable`` for listing queries."""
        return and_(
            cls.verification_status == VerificationStatus.APPROVED,
            cls.is_active.is_(True),
        )

    def __repr__(self):
        return f"<DoctorProfile(id={self.id}, name='{self.full_name}', status='{self.verification_status}')>"


def is_publicly_bookable(doctor: DoctorProfile) -> bool:
    return doctor is not None and doctor.is_publicly_bookable
