import json

import jwt
import pytest

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, PATIENT_EMAIL, PATIENT_PASSWORD


@pytest.mark.auth
class TestAdminLogin:
    """Staff credential exchange."""

    def test_login_success(self, client, admin_headers):
        response = client.post(
            "/api/admin/login",
            data=json.dumps({"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD}),
            content_type="application/json",
        )
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["success"] is True
        assert data["user"] == {"fullName": "Clinic Admin", "role": "Admin", "email": ADMIN_EMAIL}
        assert data["token"]

    def test_login_wrong_password(self, client, admin_headers):
        response = client.post(
            "/api/admin/login", json={"username": ADMIN_EMAIL, "password": "nope"}
        )
        assert response.status_code == 401
        data = json.loads(response.data)
        assert data["success"] is False
        assert data["message"] == "Invalid login credentials"

    def test_login_unknown_email(self, client):
        response = client.post(
            "/api/admin/login", json={"username": "ghost@example.com", "password": "x"}
        )
        assert response.status_code == 401

    def test_login_missing_fields(self, client):
        response = client.post("/api/admin/login", json={"username": ADMIN_EMAIL})
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [
            {"username": ADMIN_EMAIL, "password": 123},
            {"username": ["admin"], "password": ADMIN_PASSWORD},
        ],
    )
    def test_login_rejects_non_string_credentials(self, client, body):
        response = client.post("/api/admin/login", json=body)
        assert response.status_code == 400
        assert response.get_json()["message"] == "Email and password must be strings."

    def test_patient_account_cannot_use_admin_login(self, client, patient_headers):
        response = client.post(
            "/api/admin/login", json={"username": PATIENT_EMAIL, "password": PATIENT_PASSWORD}
        )
        assert response.status_code == 403


@pytest.mark.auth
class TestPatientLogin:
    def test_login_success(self, client, patient_headers):
        response = client.post(
            "/api/patient/login", json={"email": PATIENT_EMAIL, "password": PATIENT_PASSWORD}
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data["user"] == {"fullName": "Dara Lim"}
        assert data["token"]

    def test_staff_account_is_not_a_patient(self, client, admin_headers):
        response = client.post(
            "/api/patient/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )
        assert response.status_code == 403
        assert "not registered as a patient" in response.get_json()["message"]


@pytest.mark.auth
class TestAuthGate:
    def test_missing_token(self, client):
        response = client.get("/api/portal/dashboard")
        assert response.status_code == 401
        assert response.get_json()["message"] == "Authentication token required."

    def test_non_bearer_scheme(self, client):
        response = client.get("/api/portal/dashboard", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get(
            "/api/portal/dashboard", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid or expired token."

    def test_expired_token(self, app, client, patient_headers):
        token = patient_headers["Authorization"].split(" ", 1)[1]
        claims = jwt.decode(token, app.config["SECRET_KEY"], algorithms=["HS256"])
        claims["exp"] = claims["iat"] - 10
        expired = jwt.encode(claims, app.config["SECRET_KEY"], algorithm="HS256")

        response = client.get(
            "/api/portal/dashboard", headers={"Authorization": f"Bearer {expired}"}
        )
        assert response.status_code == 401

    def test_token_for_deleted_account(self, app, client):
        token = jwt.encode(
            {"sub": "9999", "email": "gone@example.com", "role": "PATIENT"},
            app.config["SECRET_KEY"],
            algorithm="HS256",
        )
        response = client.get(
            "/api/portal/dashboard", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401


@pytest.mark.auth
class TestChangePassword:
    def test_requires_token(self, client):
        response = client.post(
            "/api/user/change-password",
            json={"currentPassword": "a", "newPassword": "b"},
        )
        assert response.status_code == 401

    def test_wrong_current_password(self, client, admin_headers):
        response = client.post(
            "/api/user/change-password",
            json={"currentPassword": "wrong", "newPassword": "brand-new-pass"},
            headers=admin_headers,
        )
        assert response.status_code == 401

    def test_missing_new_password(self, client, admin_headers):
        response = client.post(
            "/api/user/change-password",
            json={"currentPassword": ADMIN_PASSWORD},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_non_string_new_password(self, client, admin_headers):
        response = client.post(
            "/api/user/change-password",
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": 12345678},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "Passwords must be strings."

    def test_change_then_login_with_new_password(self, client, admin_headers):
        response = client.post(
            "/api/user/change-password",
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "brand-new-pass"},
            headers=admin_headers,
        )
        assert response.status_code == 200

        old = client.post(
            "/api/admin/login", json={"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )
        new = client.post(
            "/api/admin/login", json={"username": ADMIN_EMAIL, "password": "brand-new-pass"}
        )
        assert old.status_code == 401
        assert new.status_code == 200
