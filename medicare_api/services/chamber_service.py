import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError, FieldValidationError
from ..core.security import AuthorizationError, Role
from ..models.chamber import Chamber
from ..models.doctor import DoctorProfile
from ..schemas.chamber import ChamberFields
from .role_resolver import RoleResolver

logger = logging.getLogger(__name__)


class ChamberService:
    def __init__(self, db: Session):
        self.db = db
        self.roles = RoleResolver(db)

    def _get_doctor(self, doctor_id: int) -> DoctorProfile:
        doctor = self.db.query(DoctorProfile).filter(DoctorProfile.id == doctor_id).first()
        if not doctor:
            raise NotFoundError("Doctor")
        return doctor

    def _get_chamber(self, chamber_id: int) -> Chamber:
        chamber = self.db.query(Chamber).filter(Chamber.id == chamber_id).first()
        if not chamber:
            raise NotFoundError("Chamber")
        return chamber

    def _require_owner_or_admin(self, doctor: DoctorProfile, actor_id: int) -> None:
        if doctor.user_id == actor_id:
            return
        if not self.roles.has_membership(actor_id, Role.ADMIN):
            raise AuthorizationError()

    @staticmethod
    def _validate(fields: ChamberFields) -> None:
        if not fields.name.strip():
            raise FieldValidationError("name", "Chamber name is required")
        if not fields.address.strip():
            raise FieldValidationError("address", "Chamber address is required")

    @staticmethod
    def _apply(chamber: Chamber, fields: ChamberFields) -> None:
        chamber.name = fields.name.strip()
        chamber.address = fields.address.strip()
        chamber.phone = fields.phone or None
        chamber.timing = fields.timing or None
        chamber.appointment_fee = fields.appointment_fee
        chamber.serial_available = fields.serial_available
        # Stored as a de-duplicated list, in the order given
        chamber.days = [day.value for day in dict.fromkeys(fields.days)]

    def add_chamber(self, doctor_id: int, actor_id: int, fields: ChamberFields) -> Chamber:
        doctor = self._get_doctor(doctor_id)
        self._require_owner_or_admin(doctor, actor_id)
        self._validate(fields)

        chamber = Chamber(doctor_id=doctor.id)
        self._apply(chamber, fields)

        self.db.add(chamber)
        self.db.commit()
        self.db.refresh(chamber)

        logger.info("Chamber %s added for doctor %s by %s", chamber.id, doctor.id, actor_id)
        return chamber

    def update_chamber(self, chamber_id: int, actor_id: int, fields: ChamberFields) -> Chamber:
        chamber = self._get_chamber(chamber_id)
        self._require_owner_or_admin(chamber.doctor, actor_id)
        self._validate(fields)

        self._apply(chamber, fields)
        self.db.commit()
        self.db.refresh(chamber)
        return chamber

    def delete_chamber(self, chamber_id: int, actor_id: int) -> None:
        """Delete a chamber. Appointments keep the now-dangling chamber id."""
        chamber = self._get_chamber(chamber_id)
        self._require_owner_or_admin(chamber.doctor, actor_id)

        self.db.delete(chamber)
        self.db.commit()
        logger.info("Chamber %s deleted by %s", chamber_id, actor_id)

    def list_chambers(self, doctor_id: int) -> List[Chamber]:
        return self.db.query(Chamber).filter(
            Chamber.doctor_id == doctor_id
        ).order_by(Chamber.id).all()

    def find_chamber(self, chamber_id: Optional[int]) -> Optional[Chamber]:
        """Best-effort lookup for weak chamber references."""
        if chamber_id is None:
            return None
        return self.db.query(Chamber).filter(Chamber.id == chamber_id).first()
