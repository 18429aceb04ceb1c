from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from medicare_api.core.security import Role, AuthenticationError, AuthorizationError
from medicare_api.models import VerificationStatus, PatientProfile
from medicare_api.services.access_control import AccessControlGate, AccessDecision
from medicare_api.services.role_resolver import RoleResolver

from tests.factories import make_user, make_admin, make_patient, make_doctor


def broken_session():
    session = MagicMock()
    session.query.side_effect = OperationalError("SELECT 1", {}, Exception("database is down"))
    return session


class TestRoleResolver:

    def test_no_profile_resolves_to_none(self, db):
        user = make_user(db)
        assert RoleResolver(db).resolve(user.id) == Role.NONE

    def test_missing_principal_resolves_to_none(self, db):
        assert RoleResolver(db).resolve(None) == Role.NONE

    def test_patient(self, db):
        patient = make_patient(db)
        assert RoleResolver(db).resolve(patient.id) == Role.PATIENT

    @pytest.mark.parametrize("status", list(VerificationStatus))
    def test_doctor_regardless_of_verification(self, db, status):
        doctor = make_doctor(db, status=status, is_active=False)
        assert RoleResolver(db).resolve(doctor.user_id) == Role.DOCTOR

    def test_doctor_outranks_patient(self, db):
        user = make_patient(db)
        make_doctor(db, user=user)
        assert RoleResolver(db).resolve(user.id) == Role.DOCTOR

    def test_admin_outranks_everything(self, db):
        admin = make_admin(db)
        make_patient(db, user=admin)
        make_doctor(db, user=admin)
        resolver = RoleResolver(db)

        assert resolver.resolve(admin.id) == Role.ADMIN
        assert resolver.memberships(admin.id) == {Role.ADMIN, Role.DOCTOR, Role.PATIENT}

    def test_resolution_is_not_cached(self, db):
        user = make_user(db)
        resolver = RoleResolver(db)
        assert resolver.resolve(user.id) == Role.NONE

        db.add(PatientProfile(user_id=user.id, full_name="Late Patient", email=user.email))
        db.commit()

        assert resolver.resolve(user.id) == Role.PATIENT

    def test_lookup_failure_fails_closed(self):
        session = broken_session()
        resolver = RoleResolver(session)

        assert resolver.resolve(1) == Role.NONE
        assert resolver.has_membership(1, Role.ADMIN) is False
        # The failed transaction is discarded so later queries can run
        assert session.rollback.call_count == 2


class TestAccessControlGate:

    def test_no_principal(self, db):
        assert AccessControlGate(db).authorize(None, Role.PATIENT) == AccessDecision.DENY_UNAUTHENTICATED
        assert AccessControlGate(db).authorize(None) == AccessDecision.DENY_UNAUTHENTICATED

    def test_any_authenticated_principal_without_required_role(self, db):
        user = make_user(db)
        assert AccessControlGate(db).authorize(user) == AccessDecision.ALLOW

    @pytest.mark.parametrize("required,expected", [
        (Role.PATIENT, AccessDecision.ALLOW),
        (Role.DOCTOR, AccessDecision.DENY_FORBIDDEN),
        (Role.ADMIN, AccessDecision.DENY_FORBIDDEN),
    ])
    def test_patient_principal(self, db, required, expected):
        patient = make_patient(db)
        assert AccessControlGate(db).authorize(patient, required) == expected

    @pytest.mark.parametrize("status", list(VerificationStatus))
    def test_unverified_doctor_passes_doctor_gate(self, db, status):
        doctor = make_doctor(db, status=status)
        gate = AccessControlGate(db)

        assert gate.authorize(doctor.user, Role.DOCTOR) == AccessDecision.ALLOW
        assert gate.authorize(doctor.user, Role.ADMIN) == AccessDecision.DENY_FORBIDDEN

    def test_admin_needs_membership_record(self, db):
        admin = make_admin(db)
        outsider = make_user(db)
        gate = AccessControlGate(db)

        assert gate.authorize(admin, Role.ADMIN) == AccessDecision.ALLOW
        assert gate.authorize(outsider, Role.ADMIN) == AccessDecision.DENY_FORBIDDEN

    def test_gate_agrees_with_resolver_memberships(self, db):
        admin = make_admin(db)
        make_doctor(db, user=admin)
        gate = AccessControlGate(db)

        for role in (Role.ADMIN, Role.DOCTOR, Role.PATIENT):
            expected = role in gate.resolver.memberships(admin.id)
            assert (gate.authorize(admin, role) == AccessDecision.ALLOW) == expected

    def test_lookup_failure_denies(self, db):
        user = make_patient(db)
        gate = AccessControlGate(db, resolver=RoleResolver(broken_session()))

        assert gate.authorize(user, Role.PATIENT) == AccessDecision.DENY_FORBIDDEN

    def test_enforce_raises_matching_errors(self, db):
        user = make_user(db)
        gate = AccessControlGate(db)

        with pytest.raises(AuthenticationError):
            gate.enforce(None, Role.PATIENT)
        with pytest.raises(AuthorizationError):
            gate.enforce(user, Role.PATIENT)
        assert gate.enforce(user) is user


class TestProtectedRoutes:

    def test_patient_route_rejects_doctor(self, client, db):
        from tests.factories import auth_headers

        doctor = make_doctor(db)
        response = client.get("/api/v1/patients/me", headers=auth_headers(doctor.user))
        assert response.status_code == 403

    def test_pending_doctor_sees_own_dashboard(self, client, db):
        from tests.factories import auth_headers

        doctor = make_doctor(db, status=VerificationStatus.PENDING)
        response = client.get("/api/v1/doctors/me", headers=auth_headers(doctor.user))

        assert response.status_code == 200
        data = response.json()
        assert data["verification_status"] == "pending"
        assert data["is_publicly_bookable"] is False

    def test_admin_route_requires_login(self, client):
        response = client.get("/api/v1/admin/doctors")
        assert response.status_code == 401
