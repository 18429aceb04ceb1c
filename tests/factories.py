import itertools
from datetime import date, time
from typing import Optional

from medicare_api.core.security import create_token_pair, get_password_hash
from medicare_api.models import (
    User, UserRoleMembership, AppRole, DoctorProfile, VerificationStatus,
    PatientProfile, Chamber, Appointment, AppointmentStatus
)

PASSWORD = "TestPassword123"

_counter = itertools.count(1)
_password_hash = None


def _hashed_password() -> str:
    global _password_hash
    if _password_hash is None:
        _password_hash = get_password_hash(PASSWORD)
    return _password_hash


def make_user(db, email: Optional[str] = None) -> User:
    n = next(_counter)
    user = User(email=email or f"user{n}@example.com", password_hash=_hashed_password(), is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_admin(db, email: Optional[str] = None) -> User:
    user = make_user(db, email)
    db.add(UserRoleMembership(user_id=user.id, role=AppRole.ADMIN))
    db.commit()
    return user


def make_patient(db, full_name: str = "Test Patient", user: Optional[User] = None, **fields) -> User:
    user = user or make_user(db)
    db.add(PatientProfile(user_id=user.id, full_name=full_name, email=user.email, **fields))
    db.commit()
    db.refresh(user)
    return user


def make_doctor(
    db,
    full_name: str = "Dr. Test Doctor",
    status: VerificationStatus = VerificationStatus.APPROVED,
    is_active: bool = True,
    user: Optional[User] = None,
    **fields
) -> DoctorProfile:
    user = user or make_user(db)
    fields.setdefault("specialization", "Cardiology")
    fields.setdefault("registration_number", f"A-{next(_counter):05d}")
    doctor = DoctorProfile(
        user_id=user.id,
        full_name=full_name,
        email=user.email,
        verification_status=status,
        rejection_reason="Incomplete documents" if status == VerificationStatus.REJECTED else None,
        is_active=is_active,
        **fields
    )
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor


def make_chamber(db, doctor: DoctorProfile, name: str = "City Clinic", address: str = "12 Main Road", **fields) -> Chamber:
    fields.setdefault("days", ["Saturday", "Monday"])
    chamber = Chamber(doctor_id=doctor.id, name=name, address=address, **fields)
    db.add(chamber)
    db.commit()
    db.refresh(chamber)
    return chamber


def make_appointment(
    db,
    patient: User,
    doctor: DoctorProfile,
    appointment_date: date,
    appointment_time: time = time(10, 0),
    status: AppointmentStatus = AppointmentStatus.PENDING,
    **fields
) -> Appointment:
    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        status=status,
        **fields
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def auth_headers(user: User) -> dict:
    tokens = create_token_pair(user.id, user.email)
    return {"Authorization": f"Bearer {tokens.access_token}"}
