import pytest

from medicare_api.models import DoctorProfile, VerificationStatus

from tests.factories import make_patient, make_doctor, make_admin, auth_headers

# Test data
patient_data = {
    "email": "test@example.com",
    "password": "TestPassword123",
    "full_name": "Test User",
}

doctor_data = {
    "email": "doctor@example.com",
    "password": "TestPassword123",
    "full_name": "Rahim Uddin",
    "specialization": "Cardiology",
    "registration_number": "A-12345",
}

login_data = {
    "email": "test@example.com",
    "password": "TestPassword123"
}


class TestRegistration:

    def test_register_patient(self, client):
        """Test patient registration."""
        response = client.post("/api/v1/auth/register/patient", json=patient_data)
        assert response.status_code == 201

        data = response.json()
        assert data["email"] == patient_data["email"]
        assert "password" not in data
        assert "role" not in data

    def test_register_duplicate_email(self, client):
        """Test registration with duplicate email."""
        client.post("/api/v1/auth/register/patient", json=patient_data)

        response = client.post("/api/v1/auth/register/patient", json=patient_data)
        assert response.status_code == 400
        assert "already registered" in response.json()["detail"]

    def test_register_invalid_password(self, client):
        """Test registration with invalid password."""
        invalid_data = patient_data.copy()
        invalid_data["password"] = "weak"

        response = client.post("/api/v1/auth/register/patient", json=invalid_data)
        assert response.status_code == 422

    def test_register_doctor_starts_pending(self, client, db):
        response = client.post("/api/v1/auth/register/doctor", json=doctor_data)
        assert response.status_code == 201

        doctor = db.query(DoctorProfile).filter(DoctorProfile.user_id == response.json()["id"]).one()
        assert doctor.verification_status == VerificationStatus.PENDING
        assert doctor.is_active is True
        assert doctor.rejection_reason is None

    def test_register_doctor_duplicate_registration_number(self, client):
        client.post("/api/v1/auth/register/doctor", json=doctor_data)

        second = dict(doctor_data, email="other@example.com", registration_number="a-12345")
        response = client.post("/api/v1/auth/register/doctor", json=second)
        assert response.status_code == 400
        assert "Registration number" in response.json()["detail"]

    def test_registration_is_rate_limited(self, client, redis_store):
        redis_store.setex("rate_limit:testclient", 3600, 10)

        response = client.post("/api/v1/auth/register/patient", json=patient_data)
        assert response.status_code == 429


class TestAuthentication:

    def test_login_success(self, client):
        """Test successful login."""
        client.post("/api/v1/auth/register/patient", json=patient_data)

        response = client.post("/api/v1/auth/login", json=login_data)
        assert response.status_code == 200

        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"
        assert "user" in data

    def test_login_invalid_credentials(self, client):
        """Test login with invalid credentials."""
        response = client.post("/api/v1/auth/login", json={
            "email": "nonexistent@example.com",
            "password": "wrongpassword"
        })
        assert response.status_code == 401

    def test_login_wrong_password(self, client):
        """Test login with wrong password."""
        client.post("/api/v1/auth/register/patient", json=patient_data)

        wrong_login = login_data.copy()
        wrong_login["password"] = "wrongpassword"

        response = client.post("/api/v1/auth/login", json=wrong_login)
        assert response.status_code == 401

    def test_get_current_user_with_role(self, client):
        """Test getting current user info with its derived role."""
        client.post("/api/v1/auth/register/patient", json=patient_data)
        token = client.post("/api/v1/auth/login", json=login_data).json()["access_token"]

        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200

        data = response.json()
        assert data["email"] == patient_data["email"]
        assert data["role"] == "patient"

    def test_get_current_user_invalid_token(self, client):
        """Test get current user with invalid token."""
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer invalid_token"})
        assert response.status_code == 401

    def test_get_current_user_without_token(self, client):
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 401

    def test_refresh_token(self, client):
        """Test token refresh."""
        client.post("/api/v1/auth/register/patient", json=patient_data)
        refresh_token = client.post("/api/v1/auth/login", json=login_data).json()["refresh_token"]

        response = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 200

        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data

    def test_refresh_invalid_token(self, client):
        """Test refresh with invalid token."""
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": "invalid_token"})
        assert response.status_code == 401

    def test_logout(self, client):
        """Test user logout."""
        client.post("/api/v1/auth/register/patient", json=patient_data)
        refresh_token = client.post("/api/v1/auth/login", json=login_data).json()["refresh_token"]

        response = client.post("/api/v1/auth/logout", json={"refresh_token": refresh_token})
        assert response.status_code == 200

        response = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 401


class TestAuthorizeEndpoint:

    def test_unauthenticated_is_401(self, client):
        response = client.get("/api/v1/auth/authorize", params={"required_role": "doctor"})
        assert response.status_code == 401

    def test_no_required_role_allows_any_principal(self, client, db):
        patient = make_patient(db)

        response = client.get("/api/v1/auth/authorize", headers=auth_headers(patient))
        assert response.status_code == 200
        assert response.json() == {"decision": "allow", "role": "patient"}

    @pytest.mark.parametrize("status", list(VerificationStatus))
    def test_doctor_gate_ignores_verification_status(self, client, db, status):
        doctor = make_doctor(db, status=status)

        response = client.get(
            "/api/v1/auth/authorize",
            params={"required_role": "doctor"},
            headers=auth_headers(doctor.user),
        )
        assert response.status_code == 200
        assert response.json()["role"] == "doctor"

    def test_forbidden_does_not_name_the_required_role(self, client, db):
        patient = make_patient(db)

        response = client.get(
            "/api/v1/auth/authorize",
            params={"required_role": "admin"},
            headers=auth_headers(patient),
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied"

    def test_admin_gate(self, client, db):
        admin = make_admin(db)

        response = client.get(
            "/api/v1/auth/authorize",
            params={"required_role": "admin"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["role"] == "admin"
