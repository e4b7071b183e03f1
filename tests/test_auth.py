"""
Registration, login and single-device session tests
"""

from datetime import datetime, timedelta, timezone
from unittest import mock

from lms_backend.core.config import settings
from lms_backend.models.enums import UserRole
from tests.conftest import TEST_PASSWORD

API = "/api/v1/auth"


def registration_payload(**overrides):
    payload = {
        "full_name": "Mona Adel",
        "phone_number": "01012345678",
        "email": "mona@example.com",
        "college": "Engineering",
        "faculty": "Computer Science",
        "level": "3",
        "password": "password123",
        "confirm_password": "password123",
    }
    payload.update(overrides)
    return payload


class TestRegistration:
    def test_register_creates_student(self, client):
        response = client.post(f"{API}/register", json=registration_payload())
        assert response.status_code == 201
        data = response.json()
        assert data["user"]["role"] == "USER"
        assert data["user"]["phone_number"] == "01012345678"
        assert "hashed_password" not in data["user"]

    def test_password_mismatch(self, client):
        response = client.post(f"{API}/register", json=registration_payload(confirm_password="other123"))
        assert response.status_code == 400
        assert response.json()["detail"] == "Passwords do not match"

    def test_duplicate_phone(self, client):
        client.post(f"{API}/register", json=registration_payload())
        response = client.post(f"{API}/register", json=registration_payload(email="other@example.com"))
        assert response.status_code == 400
        assert response.json()["detail"] == "Phone number already exists"

    def test_duplicate_phone_with_surrounding_spaces(self, client, student):
        response = client.post(f"{API}/register", json=registration_payload(phone_number=f" {student.phone_number} "))
        assert response.status_code == 400
        assert response.json()["detail"] == "Phone number already exists"

    def test_duplicate_email(self, client):
        client.post(f"{API}/register", json=registration_payload())
        response = client.post(f"{API}/register", json=registration_payload(phone_number="01099999999"))
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already exists"

    def test_invalid_email(self, client):
        response = client.post(f"{API}/register", json=registration_payload(email="not-an-email"))
        assert response.status_code == 422


class TestLogin:
    def test_login_returns_token(self, client, student):
        response = client.post(f"{API}/login", json={"phone_number": student.phone_number, "password": TEST_PASSWORD})
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = client.get(f"{API}/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["id"] == student.id
        assert me.json()["is_active"] is True

    def test_wrong_password(self, client, student):
        response = client.post(f"{API}/login", json={"phone_number": student.phone_number, "password": "wrong-pass"})
        assert response.status_code == 401

    def test_second_device_is_refused(self, client, student):
        credentials = {"phone_number": student.phone_number, "password": TEST_PASSWORD}
        assert client.post(f"{API}/login", json=credentials).status_code == 200

        response = client.post(f"{API}/login", json=credentials)
        assert response.status_code == 409
        assert response.json()["detail"] == "UserAlreadyLoggedIn"

    def test_force_login_ends_previous_session(self, client, student):
        credentials = {"phone_number": student.phone_number, "password": TEST_PASSWORD}
        old_token = client.post(f"{API}/login", json=credentials).json()["access_token"]

        assert client.post(f"{API}/force-login", json=credentials).status_code == 200
        new_login = client.post(f"{API}/login", json=credentials)
        assert new_login.status_code == 200

        stale = client.get(f"{API}/me", headers={"Authorization": f"Bearer {old_token}"})
        assert stale.status_code == 401
        fresh = client.get(f"{API}/me", headers={"Authorization": f"Bearer {new_login.json()['access_token']}"})
        assert fresh.status_code == 200

    def test_force_login_without_session(self, client, student):
        response = client.post(f"{API}/force-login", json={"phone_number": student.phone_number, "password": TEST_PASSWORD})
        assert response.status_code == 400
        assert response.json()["detail"] == "No active session found"

    def test_staff_may_hold_several_sessions(self, client, teacher):
        credentials = {"phone_number": teacher.phone_number, "password": TEST_PASSWORD}
        first = client.post(f"{API}/login", json=credentials).json()["access_token"]
        second = client.post(f"{API}/login", json=credentials)
        assert second.status_code == 200

        # The older token still works for staff
        assert client.get(f"{API}/me", headers={"Authorization": f"Bearer {first}"}).status_code == 200

    def test_missing_token(self, client):
        assert client.get(f"{API}/me").status_code == 401

    def test_check_user_status(self, client, student, student_headers):
        response = client.post(f"{API}/check-user-status", json={"phone_number": student.phone_number})
        assert response.status_code == 200
        assert response.json() == {"is_active": True, "role": "USER"}


class TestLogout:
    def test_logout_revokes_token(self, client, student_headers):
        assert client.post(f"{API}/logout", headers=student_headers).status_code == 200
        assert client.get(f"{API}/me", headers=student_headers).status_code == 401

    def test_scheduled_logout_expires_after_grace_period(self, client, db, student, student_headers):
        assert client.post(f"{API}/logout/scheduled", headers=student_headers).status_code == 200

        db.refresh(student)
        assert student.logout_scheduled_at is not None
        student.logout_scheduled_at = datetime.now(timezone.utc) - timedelta(minutes=5)
        db.commit()

        assert client.get(f"{API}/me", headers=student_headers).status_code == 401
        db.refresh(student)
        assert student.is_active is False
        assert student.session_id is None

    def test_returning_user_cancels_scheduled_logout(self, client, db, student, student_headers):
        client.post(f"{API}/logout/scheduled", headers=student_headers)
        response = client.get(f"{API}/session", headers=student_headers)
        assert response.status_code == 200

        db.refresh(student)
        assert student.logout_scheduled_at is None


class TestProfile:
    def test_update_profile(self, client, student_headers):
        response = client.patch(f"{API}/me", json={"college": "Science", "level": "4"}, headers=student_headers)
        assert response.status_code == 200
        assert response.json()["college"] == "Science"
        assert response.json()["level"] == "4"

    def test_role_cannot_be_changed_through_profile(self, client, student_headers):
        response = client.patch(f"{API}/me", json={"role": "ADMIN"}, headers=student_headers)
        assert response.status_code == 200
        assert response.json()["role"] == UserRole.USER.value


class TestGoogleSignIn:
    def firebase_token(self, email, uid="firebase-uid-1"):
        from lms_backend.schemas.user_schema import TokenData
        return mock.patch(
            "lms_backend.routes.auth_routes.verify_firebase_id_token",
            return_value=TokenData(firebase_uid=uid, email=email),
        )

    def test_links_existing_account(self, client, db, student):
        with self.firebase_token(student.email):
            response = client.post(f"{API}/google", json={"firebase_id_token": "id-token"})
        assert response.status_code == 200
        assert response.json()["access_token"]

        db.refresh(student)
        assert student.firebase_uid == "firebase-uid-1"
        assert student.is_active is True

    def test_unknown_email(self, client):
        with self.firebase_token("nobody@example.com"):
            response = client.post(f"{API}/google", json={"firebase_id_token": "id-token"})
        assert response.status_code == 404


class TestRecaptcha:
    def test_token_required(self, client):
        response = client.post(f"{API}/verify-recaptcha-gate", json={})
        assert response.status_code == 400

    def test_verified_token(self, client):
        with mock.patch("lms_backend.routes.auth_routes.verify_recaptcha_token", new=mock.AsyncMock(return_value=True)):
            response = client.post(f"{API}/verify-recaptcha-gate", json={"token": "abc"})
        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_rejected_token(self, client):
        with mock.patch("lms_backend.routes.auth_routes.verify_recaptcha_token", new=mock.AsyncMock(return_value=False)):
            response = client.post(f"{API}/verify-recaptcha-gate", json={"token": "abc"})
        assert response.status_code == 400


class TestCron:
    def test_daily_reset_ends_all_sessions(self, client, db, student, student_headers, teacher, teacher_headers):
        response = client.post("/api/v1/cron/daily-reset")
        assert response.status_code == 200
        assert response.json()["reset_count"] == 2

        db.refresh(student)
        assert student.is_active is False
        assert client.get(f"{API}/me", headers=student_headers).status_code == 401

    def test_cron_secret_required_when_configured(self, client):
        with mock.patch.object(settings, "CRON_SECRET", "s3cret"):
            assert client.post("/api/v1/cron/reset-sessions").status_code == 401
            ok = client.post("/api/v1/cron/reset-sessions", headers={"Authorization": "Bearer s3cret"})
        assert ok.status_code == 200
