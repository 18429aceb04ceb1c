import logging
from datetime import date, time
from enum import Enum
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundError, InvalidTransitionError, FieldValidationError, ConflictError
from ..core.security import AuthorizationError, Role
from ..models.appointment import Appointment, AppointmentStatus
from ..models.chamber import Chamber
from ..models.doctor import DoctorProfile, is_publicly_bookable
from ..models.patient import PatientProfile
from ..schemas.appointment import (
    AppointmentCreate, AppointmentResponse, AppointmentBoard, PatientAppointments,
    CHAMBER_UNAVAILABLE_LABEL
)
from ..schemas.chamber import ChamberSummary
from .role_resolver import RoleResolver

logger = logging.getLogger(__name__)


class Party(str, Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"


# current status -> {target status: parties allowed to request it}
TRANSITIONS: Dict[AppointmentStatus, Dict[AppointmentStatus, frozenset]] = {
    AppointmentStatus.PENDING: {
        AppointmentStatus.CONFIRMED: frozenset({Party.DOCTOR}),
        AppointmentStatus.CANCELLED: frozenset({Party.DOCTOR, Party.PATIENT}),
        AppointmentStatus.NO_SHOW: frozenset({Party.DOCTOR}),
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED: frozenset({Party.DOCTOR}),
        AppointmentStatus.CANCELLED: frozenset({Party.DOCTOR, Party.PATIENT}),
        AppointmentStatus.NO_SHOW: frozenset({Party.DOCTOR}),
    },
}

TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})

# Statuses each party may ask for at all, independent of the current state
PARTY_TARGETS = {
    Party.DOCTOR: frozenset(AppointmentStatus),
    Party.PATIENT: frozenset({AppointmentStatus.CANCELLED}),
}


def is_valid_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    return new in TRANSITIONS.get(current, {})


class AppointmentService:
    def __init__(self, db: Session, enforce_slot_conflicts: Optional[bool] = None):
        self.db = db
        self.roles = RoleResolver(db)
        if enforce_slot_conflicts is None:
            enforce_slot_conflicts = settings.ENFORCE_SLOT_CONFLICTS
        self.enforce_slot_conflicts = enforce_slot_conflicts

    # Creation

    def _check_slot(self, doctor_id: int, appointment_date: date, appointment_time: time) -> None:
        """Reject a doctor/date/time already held by a live appointment.

        Only runs when slot enforcement is switched on; by default concurrent
        bookings of the same slot are all accepted.
        """
        if not self.enforce_slot_conflicts:
            return

        taken = self.db.query(Appointment.id).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == appointment_date,
            Appointment.appointment_time == appointment_time,
            Appointment.status != AppointmentStatus.CANCELLED,
        ).first()
        if taken:
            raise ConflictError()

    def create_appointment(self, patient_id: int, data: AppointmentCreate) -> Appointment:
        doctor = self.db.query(DoctorProfile).filter(DoctorProfile.id == data.doctor_id).first()
        if not is_publicly_bookable(doctor):
            raise NotFoundError("Doctor")

        if data.chamber_id is not None:
            chamber = self.db.query(Chamber).filter(Chamber.id == data.chamber_id).first()
            if not chamber or chamber.doctor_id != doctor.id:
                raise FieldValidationError("chamber_id", "Chamber does not belong to this doctor")

        # "10:00" and "10:00:00" name the same slot
        appointment_time = data.appointment_time.replace(microsecond=0, tzinfo=None)

        self._check_slot(doctor.id, data.appointment_date, appointment_time)

        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor.id,
            chamber_id=data.chamber_id,
            appointment_date=data.appointment_date,
            appointment_time=appointment_time,
            reason=(data.reason or "").strip() or None,
            status=AppointmentStatus.PENDING,
        )

        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(
            "Appointment %s booked: patient %s with doctor %s on %s %s",
            appointment.id, patient_id, doctor.id, appointment.appointment_date, appointment.appointment_time
        )
        return appointment

    # Status transitions

    def _get(self, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment")
        return appointment

    def _parties(self, appointment: Appointment, actor_id: int) -> set:
        parties = set()
        if appointment.doctor is not None and appointment.doctor.user_id == actor_id:
            parties.add(Party.DOCTOR)
        if appointment.patient_id == actor_id:
            parties.add(Party.PATIENT)
        return parties

    def update_status(
        self,
        appointment_id: int,
        actor_id: int,
        new_status: AppointmentStatus,
        notes: Optional[str] = None
    ) -> Appointment:
        """Move an appointment along its lifecycle.

        Ownership is checked first, then the transition table. The write is a
        compare-and-set on the status that was read, so a racing update that
        got there first turns this call into an ``InvalidTransitionError``.
        """
        appointment = self._get(appointment_id)
        parties = self._parties(appointment, actor_id)

        if not any(new_status in PARTY_TARGETS[party] for party in parties):
            raise AuthorizationError()
        if notes is not None and Party.DOCTOR not in parties:
            raise AuthorizationError("Only the doctor can add notes")

        current = AppointmentStatus(appointment.status)
        allowed_parties = TRANSITIONS.get(current, {}).get(new_status)
        if allowed_parties is None:
            raise InvalidTransitionError(current.value, new_status.value)
        if not parties & allowed_parties:
            raise AuthorizationError()

        values = {Appointment.status: new_status}
        if notes is not None:
            values[Appointment.notes] = notes.strip() or None

        updated = self.db.query(Appointment).filter(
            Appointment.id == appointment.id,
            Appointment.status == current,
        ).update(values, synchronize_session=False)

        if updated != 1:
            self.db.rollback()
            latest = self._get(appointment_id)
            raise InvalidTransitionError(AppointmentStatus(latest.status).value, new_status.value)

        self.db.commit()
        self.db.refresh(appointment)

        logger.info(
            "Appointment %s %s -> %s by %s",
            appointment.id, current.value, new_status.value, actor_id
        )
        return appointment

    # Reads

    def get_for_party(self, appointment_id: int, actor_id: int) -> Appointment:
        appointment = self._get(appointment_id)
        if not self._parties(appointment, actor_id) and not self.roles.has_membership(actor_id, Role.ADMIN):
            raise AuthorizationError()
        return appointment

    def serialize(self, appointments: Iterable[Appointment]) -> List[AppointmentResponse]:
        """Attach patient, doctor and chamber details in three batched lookups."""
        appointments = list(appointments)
        if not appointments:
            return []

        chamber_ids = {a.chamber_id for a in appointments if a.chamber_id is not None}
        patient_ids = {a.patient_id for a in appointments}
        doctor_ids = {a.doctor_id for a in appointments}

        chambers = {
            c.id: c for c in self.db.query(Chamber).filter(Chamber.id.in_(chamber_ids)).all()
        } if chamber_ids else {}
        patients = {
            p.user_id: p for p in self.db.query(PatientProfile).filter(PatientProfile.user_id.in_(patient_ids)).all()
        }
        doctors = {
            d.id: d for d in self.db.query(DoctorProfile).filter(DoctorProfile.id.in_(doctor_ids)).all()
        }

        results = []
        for a in appointments:
            chamber = chambers.get(a.chamber_id) if a.chamber_id is not None else None
            unavailable = a.chamber_id is not None and chamber is None
            patient = patients.get(a.patient_id)
            doctor = doctors.get(a.doctor_id)

            if chamber is not None:
                label = f"{chamber.name}, {chamber.address}"
            elif unavailable:
                label = CHAMBER_UNAVAILABLE_LABEL
            else:
                label = None

            results.append(AppointmentResponse(
                id=a.id,
                patient_id=a.patient_id,
                doctor_id=a.doctor_id,
                chamber_id=a.chamber_id,
                appointment_date=a.appointment_date,
                appointment_time=a.appointment_time,
                status=a.status,
                reason=a.reason,
                notes=a.notes,
                created_at=a.created_at,
                patient_name=patient.full_name if patient else None,
                doctor_name=doctor.full_name if doctor else None,
                chamber=ChamberSummary.model_validate(chamber) if chamber is not None else None,
                chamber_unavailable=unavailable,
                location_label=label,
            ))
        return results

    def list_for_doctor(
        self,
        doctor_id: int,
        actor_id: int,
        search: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
        on_date: Optional[date] = None,
        today: Optional[date] = None
    ) -> AppointmentBoard:
        """Doctor's appointment board, bucketed relative to ``today``.

        ``today`` and ``upcoming`` leave out cancelled appointments; ``past``
        keeps every status; ``cancelled`` collects all cancelled ones.
        """
        doctor = self.db.query(DoctorProfile).filter(DoctorProfile.id == doctor_id).first()
        if not doctor:
            raise NotFoundError("Doctor")
        if doctor.user_id != actor_id and not self.roles.has_membership(actor_id, Role.ADMIN):
            raise AuthorizationError()

        today = today or date.today()

        query = self.db.query(Appointment).outerjoin(
            PatientProfile, PatientProfile.user_id == Appointment.patient_id
        ).filter(Appointment.doctor_id == doctor.id)

        if search:
            needle = search.strip().lower()
            query = query.filter(or_(
                func.lower(func.coalesce(PatientProfile.full_name, "")).contains(needle, autoescape=True),
                func.lower(func.coalesce(Appointment.reason, "")).contains(needle, autoescape=True),
            ))
        if status is not None:
            query = query.filter(Appointment.status == status)
        if on_date is not None:
            query = query.filter(Appointment.appointment_date == on_date)

        rows = self.serialize(query.order_by(
            Appointment.appointment_date, Appointment.appointment_time, Appointment.id
        ).all())

        board = AppointmentBoard()
        for item in rows:
            cancelled = item.status == AppointmentStatus.CANCELLED
            if item.appointment_date == today and not cancelled:
                board.today.append(item)
            elif item.appointment_date > today and not cancelled:
                board.upcoming.append(item)
            elif item.appointment_date < today:
                board.past.append(item)
            if cancelled:
                board.cancelled.append(item)

        counts = dict(
            self.db.query(Appointment.status, func.count(Appointment.id))
            .filter(Appointment.doctor_id == doctor.id)
            .group_by(Appointment.status)
            .all()
        )
        board.counts = {
            s.value: counts.get(s, 0)
            for s in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED)
        }
        return board

    def list_for_patient(self, patient_id: int, today: Optional[date] = None) -> PatientAppointments:
        today = today or date.today()

        rows = self.serialize(
            self.db.query(Appointment)
            .filter(Appointment.patient_id == patient_id)
            .order_by(Appointment.appointment_date, Appointment.appointment_time, Appointment.id)
            .all()
        )

        result = PatientAppointments()
        for item in rows:
            if item.appointment_date >= today and item.status != AppointmentStatus.CANCELLED:
                result.upcoming.append(item)
            else:
                result.past.append(item)
        return result
