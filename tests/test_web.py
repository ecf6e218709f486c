"""Tests for the server-rendered auth pages."""

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from marketplace.models.user import User
from marketplace.services.password import verify_password

TEST_PASSWORD = "Passw0rd!"


class TestSignInPage:
    def test_page_shows_guard_message(self, client: TestClient):
        response = client.get("/auth/sign-in?returnTo=/user&message=Please log in to continue")
        assert response.status_code == 200
        assert "Please log in to continue" in response.text
        assert 'value="/user"' in response.text

    def test_submit_redirects_to_return_to(self, client: TestClient, test_user: User):
        response = client.post(
            "/auth/sign-in",
            data={"email": "test@example.com", "password": TEST_PASSWORD, "return_to": "/user"},
            follow_redirects=False,
        )
        assert response.status_code == 302
        assert response.headers["location"] == "/user"
        assert "token" in response.cookies
        assert "accessToken" in response.cookies

    def test_submit_ignores_offsite_return_to(self, client: TestClient, test_user: User):
        response = client.post(
            "/auth/sign-in",
            data={"email": "test@example.com", "password": TEST_PASSWORD, "return_to": "//evil.example.com"},
            follow_redirects=False,
        )
        assert response.status_code == 302
        assert response.headers["location"] == "/"

    def test_submit_wrong_password(self, client: TestClient, test_user: User):
        response = client.post("/auth/sign-in", data={"email": "test@example.com", "password": "Nope@123"})
        assert response.status_code == 401
        assert "Invalid credentials" in response.text


class TestVerifyEmailPage:
    def test_opening_link_does_not_consume_token(self, client: TestClient, outbox, db_session: Session):
        client.post(
            "/api/auth/register",
            json={"email": "a@x.com", "password": "Aa@1234", "confirmPassword": "Aa@1234", "username": "u1"},
        )
        token = outbox.last_token("verification")
        response = client.get(f"/auth/verify-email/{token}")
        assert response.status_code == 200
        assert f'action="/auth/verify-email/{token}"' in response.text

        user = db_session.query(User).filter(User.email == "a@x.com").one()
        assert user.email_verified is False
        assert user.email_verification_token == token

    def test_confirm_verifies_account(self, client: TestClient, outbox, db_session: Session):
        client.post(
            "/api/auth/register",
            json={"email": "a@x.com", "password": "Aa@1234", "confirmPassword": "Aa@1234", "username": "u1"},
        )
        token = outbox.last_token("verification")
        response = client.post(f"/auth/verify-email/{token}")
        assert response.status_code == 200
        assert "Email verified successfully" in response.text

        user = db_session.query(User).filter(User.email == "a@x.com").one()
        assert user.email_verified is True

    def test_bad_link(self, client: TestClient):
        response = client.post("/auth/verify-email/not-a-token")
        assert response.status_code == 400
        assert "Invalid or expired token" in response.text


class TestResetPasswordPage:
    def test_form_renders(self, client: TestClient):
        response = client.get("/auth/reset-password/sometoken")
        assert response.status_code == 200
        assert "Set a new password" in response.text

    def test_form_submit_resets_password(
        self, client: TestClient, test_user: User, outbox, db_session: Session
    ):
        client.post("/api/auth/forgot-password", json={"email": "test@example.com"})
        token = outbox.last_token("password_reset")

        response = client.post(
            f"/auth/reset-password/{token}",
            data={"password": "N3w@pass", "confirm_password": "N3w@pass"},
            follow_redirects=False,
        )
        assert response.status_code == 302
        assert response.headers["location"].startswith("/auth/sign-in")

        db_session.refresh(test_user)
        assert verify_password("N3w@pass", test_user.password_hash)

    def test_form_submit_mismatch(self, client: TestClient):
        response = client.post(
            "/auth/reset-password/sometoken",
            data={"password": "N3w@pass", "confirm_password": "N3w@pasz"},
        )
        assert response.status_code == 400
        assert "Passwords do not match" in response.text


class TestHealth:
    def test_health(self, client: TestClient):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
