import logging
from collections import OrderedDict
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError
from ..core.security import AuthorizationError, Role
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import DoctorProfile
from ..models.patient import PatientProfile
from ..schemas.patient import PatientSummary
from .appointment_service import AppointmentService
from .role_resolver import RoleResolver

logger = logging.getLogger(__name__)

SORT_KEYS = ("recent", "visits", "name")


class PatientHistoryService:
    """Read-side aggregation of a doctor's appointments by patient.

    Only ``completed`` appointments count as visits. First and last visit
    dates span every appointment the patient has with the doctor.
    """

    def __init__(self, db: Session):
        self.db = db
        self.roles = RoleResolver(db)

    def _aggregate(self, doctor_id: int) -> List[PatientSummary]:
        appointments = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id
        ).order_by(
            Appointment.appointment_date.desc(), Appointment.appointment_time.desc(), Appointment.id.desc()
        ).all()

        if not appointments:
            return []

        serialized = AppointmentService(self.db).serialize(appointments)

        grouped = OrderedDict()
        for item in serialized:
            grouped.setdefault(item.patient_id, []).append(item)

        profiles = {
            p.user_id: p for p in self.db.query(PatientProfile).filter(
                PatientProfile.user_id.in_(list(grouped.keys()))
            ).all()
        }

        summaries = []
        for patient_id, history in grouped.items():
            profile = profiles.get(patient_id)
            dates = [a.appointment_date for a in history]
            summaries.append(PatientSummary(
                patient_id=patient_id,
                full_name=profile.full_name if profile else None,
                email=profile.email if profile else None,
                phone=profile.phone if profile else None,
                gender=profile.gender if profile else None,
                blood_group=profile.blood_group if profile else None,
                address=profile.address if profile else None,
                date_of_birth=profile.date_of_birth if profile else None,
                total_visits=sum(1 for a in history if a.status == AppointmentStatus.COMPLETED),
                first_visit=min(dates),
                last_visit=max(dates),
                appointments=history,
            ))
        return summaries

    def list_patient_history(
        self,
        doctor_id: int,
        actor_id: int,
        search: Optional[str] = None,
        sort_by: str = "recent"
    ) -> List[PatientSummary]:
        doctor = self.db.query(DoctorProfile).filter(DoctorProfile.id == doctor_id).first()
        if not doctor:
            raise NotFoundError("Doctor")
        if doctor.user_id != actor_id and not self.roles.has_membership(actor_id, Role.ADMIN):
            raise AuthorizationError()

        try:
            summaries = self._aggregate(doctor.id)
        except SQLAlchemyError:
            logger.exception("Patient history aggregation failed for doctor %s", doctor_id)
            self.db.rollback()
            return []

        if search:
            needle = search.strip().lower()
            summaries = [
                s for s in summaries
                if needle in (s.full_name or "").lower()
                or needle in (s.email or "").lower()
                or needle in (s.phone or "")
            ]

        if sort_by == "visits":
            summaries.sort(key=lambda s: s.total_visits, reverse=True)
        elif sort_by == "name":
            summaries.sort(key=lambda s: (s.full_name or "").lower())
        else:
            summaries.sort(key=lambda s: s.last_visit, reverse=True)

        return summaries
