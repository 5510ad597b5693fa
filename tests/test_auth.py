import pytest

from clinic.core.security import get_token_authority
from tests.conftest import PASSWORD, make_admin, make_doctor, make_patient


def login(client, role, identifier, password=PASSWORD):
    return client.post(
        f"/api/v1/auth/{role}/login",
        json={"identifier": identifier, "password": password}
    )


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestLogin:

    def test_admin_login(self, client, db):
        """Test administrator login by username."""
        make_admin(db)

        response = login(client, "admin", "admin")
        assert response.status_code == 200

        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["role"] == "admin"
        assert data["expires_in"] == 7 * 24 * 60 * 60
        assert data["access_token"].count(".") == 2

    def test_doctor_login(self, client, db):
        """Test doctor login by email."""
        make_doctor(db)

        response = login(client, "doctor", "house@clinic.test")
        assert response.status_code == 200
        assert response.json()["role"] == "doctor"

    def test_patient_login(self, client, db):
        """Test patient login by email."""
        make_patient(db)

        response = login(client, "patient", "ana@example.com")
        assert response.status_code == 200

    def test_login_wrong_password(self, client, db):
        """Test login with wrong password."""
        make_patient(db)

        response = login(client, "patient", "ana@example.com", "wrongpassword")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid identifier or password"

    def test_login_unknown_identifier(self, client, db):
        """Unknown identifiers get the same answer as wrong passwords."""
        response = login(client, "patient", "nobody@example.com")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid identifier or password"

    def test_login_checks_the_role_store(self, client, db):
        """A patient's credentials do not open a doctor session."""
        make_patient(db)

        response = login(client, "doctor", "ana@example.com")
        assert response.status_code == 401

    def test_login_unknown_role(self, client, db):
        response = login(client, "superuser", "admin")
        assert response.status_code == 422

    def test_login_rate_limited(self, client, db):
        """Test the per-client login budget."""
        for _ in range(10):
            assert login(client, "patient", "nobody@example.com").status_code == 401

        response = login(client, "patient", "nobody@example.com")
        assert response.status_code == 429


class TestVerifyToken:

    def test_verify_token(self, client, db):
        """Test token verification for the role it was issued for."""
        patient = make_patient(db)
        token = login(client, "patient", "ana@example.com").json()["access_token"]

        response = client.post("/api/v1/auth/patient/verify-token", headers=bearer(token))
        assert response.status_code == 200

        data = response.json()
        assert data["valid"] is True
        assert data["principal_id"] == patient.id
        assert data["role"] == "patient"

    def test_verify_token_other_role(self, client, db):
        make_patient(db)
        token = login(client, "patient", "ana@example.com").json()["access_token"]

        response = client.post("/api/v1/auth/doctor/verify-token", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_verify_token_unknown_role(self, client, db):
        """Unknown roles in the path are an authentication failure."""
        make_admin(db)
        token = login(client, "admin", "admin").json()["access_token"]

        response = client.post("/api/v1/auth/superuser/verify-token", headers=bearer(token))
        assert response.status_code == 401

    def test_verify_invalid_token(self, client, db):
        response = client.post(
            "/api/v1/auth/patient/verify-token", headers=bearer("invalid_token")
        )
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_verify_missing_header(self, client, db):
        response = client.post("/api/v1/auth/patient/verify-token")
        assert response.status_code == 401

    def test_token_for_deleted_principal(self, client, db):
        """Deleting the account ends its sessions."""
        patient = make_patient(db)
        token = get_token_authority().issue(patient.email).token
        db.delete(patient)
        db.commit()

        response = client.post("/api/v1/auth/patient/verify-token", headers=bearer(token))
        assert response.status_code == 401


if __name__ == "__main__":
    pytest.main([__file__])
