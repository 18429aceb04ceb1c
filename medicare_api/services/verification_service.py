import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError, InvalidTransitionError, FieldValidationError
from ..core.security import AuthorizationError, Role
from ..models.doctor import DoctorProfile, VerificationStatus
from .notification_service import NotificationService, TemplateKind
from .role_resolver import RoleResolver

logger = logging.getLogger(__name__)

# No terminal state: a rejected doctor may be re-reviewed and approved
ALLOWED_TRANSITIONS = {
    VerificationStatus.PENDING: {VerificationStatus.APPROVED, VerificationStatus.REJECTED},
    VerificationStatus.APPROVED: {VerificationStatus.REJECTED},
    VerificationStatus.REJECTED: {VerificationStatus.APPROVED},
}


def can_transition(current: VerificationStatus, new: VerificationStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


class VerificationService:
    """Admin moderation of doctor profiles: verification, visibility, curation."""

    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier
        self.roles = RoleResolver(db)

    def _require_admin(self, actor_id: int) -> None:
        if not self.roles.has_membership(actor_id, Role.ADMIN):
            raise AuthorizationError()

    def _get_doctor(self, doctor_id: int) -> DoctorProfile:
        doctor = self.db.query(DoctorProfile).filter(DoctorProfile.id == doctor_id).first()
        if not doctor:
            raise NotFoundError("Doctor")
        return doctor

    def transition(
        self,
        doctor_id: int,
        actor_id: int,
        new_status: VerificationStatus,
        rejection_reason: Optional[str] = None
    ) -> DoctorProfile:
        """Apply one verification transition and commit it."""
        self._require_admin(actor_id)
        doctor = self._get_doctor(doctor_id)

        current = VerificationStatus(doctor.verification_status)
        if not can_transition(current, new_status):
            raise InvalidTransitionError(current.value, new_status.value)

        if new_status == VerificationStatus.REJECTED:
            reason = (rejection_reason or "").strip()
            if not reason:
                raise FieldValidationError("rejection_reason", "A rejection reason is required")
            doctor.rejection_reason = reason
        else:
            doctor.rejection_reason = None

        doctor.verification_status = new_status
        self.db.commit()
        self.db.refresh(doctor)

        logger.info(
            "Doctor %s verification %s -> %s by admin %s",
            doctor.id, current.value, new_status.value, actor_id
        )
        return doctor

    async def review(
        self,
        doctor_id: int,
        actor_id: int,
        new_status: VerificationStatus,
        rejection_reason: Optional[str] = None
    ) -> Tuple[DoctorProfile, List[str]]:
        """Commit the transition, then attempt the doctor notification.

        A failed notification is returned as a warning; the committed
        status is never rolled back.
        """
        doctor = self.transition(doctor_id, actor_id, new_status, rejection_reason)
        warnings: List[str] = []

        if self.notifier is None:
            return doctor, warnings

        template = (
            TemplateKind.DOCTOR_APPROVED
            if new_status == VerificationStatus.APPROVED
            else TemplateKind.DOCTOR_REJECTED
        )
        payload = {"doctor_name": doctor.full_name, "rejection_reason": doctor.rejection_reason}

        try:
            sent, error = await self.notifier.send(doctor.email, template, payload)
        except Exception as e:
            logger.warning("Notifier raised for doctor %s: %s", doctor.id, e, exc_info=True)
            sent, error = False, f"Email delivery failed: {e}"

        if not sent:
            warnings.append(f"Status updated, but the notification email was not sent. {error or ''}".strip())

        return doctor, warnings

    def set_active(self, doctor_id: int, actor_id: int, is_active: bool) -> DoctorProfile:
        """Visibility toggle; open to admins and to the owning doctor."""
        doctor = self._get_doctor(doctor_id)

        if doctor.user_id != actor_id:
            self._require_admin(actor_id)

        doctor.is_active = is_active
        self.db.commit()
        self.db.refresh(doctor)

        logger.info("Doctor %s visibility set to %s by %s", doctor.id, is_active, actor_id)
        return doctor

    def set_featured(
        self,
        doctor_id: int,
        actor_id: int,
        is_featured: bool,
        featured_rank: Optional[int] = None
    ) -> DoctorProfile:
        self._require_admin(actor_id)
        doctor = self._get_doctor(doctor_id)

        if is_featured:
            if featured_rank is None:
                featured_count = self.db.query(func.count(DoctorProfile.id)).filter(
                    DoctorProfile.is_featured.is_(True),
                    DoctorProfile.id != doctor.id
                ).scalar()
                featured_rank = featured_count + 1
            doctor.is_featured = True
            doctor.featured_rank = featured_rank
        else:
            doctor.is_featured = False
            doctor.featured_rank = None

        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def delete_doctor(self, doctor_id: int, actor_id: int) -> None:
        """Remove a doctor profile with its chambers and appointments."""
        self._require_admin(actor_id)
        doctor = self._get_doctor(doctor_id)

        self.db.delete(doctor)
        self.db.commit()
        logger.info("Doctor %s deleted by admin %s", doctor_id, actor_id)

    def list_doctors(
        self,
        actor_id: int,
        status: Optional[VerificationStatus] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[DoctorProfile]:
        self._require_admin(actor_id)

        query = self.db.query(DoctorProfile)
        if status is not None:
            query = query.filter(DoctorProfile.verification_status == status)

        return query.order_by(DoctorProfile.created_at.desc(), DoctorProfile.id.desc()).offset(skip).limit(limit).all()
