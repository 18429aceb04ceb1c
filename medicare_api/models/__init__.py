from .user import User, UserRoleMembership, RefreshToken, AppRole
from .doctor import DoctorProfile, VerificationStatus, is_publicly_bookable
from .patient import PatientProfile
from .chamber import Chamber, Weekday
from .appointment import Appointment, AppointmentStatus

__all__ = [
    "User", "UserRoleMembership", "RefreshToken", "AppRole",
    "DoctorProfile", "VerificationStatus", "is_publicly_bookable",
    "PatientProfile",
    "Chamber", "Weekday",
    "Appointment", "AppointmentStatus",
]
