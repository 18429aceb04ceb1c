import logging
from typing import Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.security import Role
from ..models.user import UserRoleMembership, AppRole
from ..models.doctor import DoctorProfile
from ..models.patient import PatientProfile

logger = logging.getLogger(__name__)

# Order matters: the first membership found wins
ROLE_PRIORITY = (Role.ADMIN, Role.DOCTOR, Role.PATIENT)


class RoleResolver:
    """Derives a principal's role from relational membership.

    Nothing here is cached; every call hits the data store so that a profile
    created or removed mid-session is reflected on the next check. Lookup
    failures resolve to ``Role.NONE``.
    """

    def __init__(self, db: Session):
        self.db = db

    def is_admin(self, principal_id: int) -> bool:
        return self.db.query(UserRoleMembership.id).filter(
            UserRoleMembership.user_id == principal_id,
            UserRoleMembership.role == AppRole.ADMIN
        ).first() is not None

    def get_doctor_profile(self, principal_id: int) -> Optional[DoctorProfile]:
        return self.db.query(DoctorProfile).filter(
            DoctorProfile.user_id == principal_id
        ).first()

    def get_patient_profile(self, principal_id: int) -> Optional[PatientProfile]:
        return self.db.query(PatientProfile).filter(
            PatientProfile.user_id == principal_id
        ).first()

    def _has(self, principal_id: int, role: Role) -> bool:
        if role == Role.ADMIN:
            return self.is_admin(principal_id)
        if role == Role.DOCTOR:
            return self.get_doctor_profile(principal_id) is not None
        if role == Role.PATIENT:
            return self.get_patient_profile(principal_id) is not None
        return False

    def has_membership(self, principal_id: int, role: Role) -> bool:
        """True when the principal holds ``role``, regardless of priority."""
        try:
            return self._has(principal_id, role)
        except SQLAlchemyError:
            logger.warning("Membership lookup failed for principal %s", principal_id, exc_info=True)
            self.db.rollback()
            return False

    def memberships(self, principal_id: int) -> Set[Role]:
        return {role for role in ROLE_PRIORITY if self.has_membership(principal_id, role)}

    def resolve(self, principal_id: Optional[int]) -> Role:
        if principal_id is None:
            return Role.NONE

        try:
            for role in ROLE_PRIORITY:
                if self._has(principal_id, role):
                    return role
        except SQLAlchemyError:
            logger.warning("Role resolution failed for principal %s", principal_id, exc_info=True)
            self.db.rollback()
            return Role.NONE

        return Role.NONE
