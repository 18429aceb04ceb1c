from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError
from ..models.doctor import DoctorProfile
from ..schemas.doctor import DoctorProfileUpdate


class DoctorDirectoryService:
    """Public doctor listing plus the doctor's own profile screen.

    Every public read goes through ``DoctorProfile.publicly_bookable_clause``
    so listing, lookup and booking agree on who is visible.
    """

    def __init__(self, db: Session):
        self.db = db

    def _public_query(self):
        return self.db.query(DoctorProfile).filter(DoctorProfile.publicly_bookable_clause())

    def search(
        self,
        q: Optional[str] = None,
        specialization: Optional[str] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[DoctorProfile]:
        query = self._public_query()

        if q:
            needle = q.strip().lower()
            query = query.filter(or_(
                func.lower(DoctorProfile.full_name).contains(needle, autoescape=True),
                func.lower(DoctorProfile.specialization).contains(needle, autoescape=True),
                func.lower(func.coalesce(DoctorProfile.hospital_affiliation, "")).contains(needle, autoescape=True),
            ))

        if specialization:
            query = query.filter(func.lower(DoctorProfile.specialization) == specialization.strip().lower())

        return query.order_by(
            DoctorProfile.is_featured.desc(),
            DoctorProfile.featured_rank.is_(None),
            DoctorProfile.featured_rank,
            DoctorProfile.full_name,
        ).offset(skip).limit(limit).all()

    def featured(self) -> List[DoctorProfile]:
        return self._public_query().filter(
            DoctorProfile.is_featured.is_(True)
        ).order_by(
            DoctorProfile.featured_rank.is_(None),
            DoctorProfile.featured_rank,
            DoctorProfile.id,
        ).all()

    def get_public(self, doctor_id: int) -> DoctorProfile:
        doctor = self._public_query().filter(DoctorProfile.id == doctor_id).first()
        if not doctor:
            raise NotFoundError("Doctor")
        return doctor

    def verify_registration(self, registration_number: str) -> DoctorProfile:
        """Exact, case-insensitive registration number lookup."""
        needle = (registration_number or "").strip().lower()
        doctor = self._public_query().filter(
            func.lower(DoctorProfile.registration_number) == needle
        ).first()
        if not needle or not doctor:
            raise NotFoundError("Verified doctor with this registration number")
        return doctor

    def get_own_profile(self, principal_id: int) -> DoctorProfile:
        doctor = self.db.query(DoctorProfile).filter(DoctorProfile.user_id == principal_id).first()
        if not doctor:
            raise NotFoundError("Doctor profile")
        return doctor

    def update_own_profile(self, principal_id: int, data: DoctorProfileUpdate) -> DoctorProfile:
        """Doctors edit descriptive fields only; status fields are admin-owned."""
        doctor = self.get_own_profile(principal_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in ("full_name", "specialization"):
                continue
            setattr(doctor, field, value)

        self.db.commit()
        self.db.refresh(doctor)
        return doctor
