"""Pytest configuration and fixtures."""

from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.database import Base, get_db
from marketplace.models.user import User, UserRole, UserStatus
from marketplace.services import email as email_module
from marketplace.services.password import hash_password
from marketplace.services.user import UserService

TEST_PASSWORD = "Passw0rd!"


@dataclass
class SentEmail:
    kind: str
    to: str
    token: str


class RecordingEmailService:
    """Stands in for EmailService and keeps every message instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []

    def send_password_reset_email(self, email: str, token: str) -> None:
        self.sent.append(SentEmail("password_reset", email, token))

    def send_verification_email(self, email: str, token: str) -> None:
        self.sent.append(SentEmail("verification", email, token))

    def of_kind(self, kind: str) -> list[SentEmail]:
        return [m for m in self.sent if m.kind == kind]

    def last_token(self, kind: str) -> str:
        return self.of_kind(kind)[-1].token


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="outbox")
def outbox_fixture(monkeypatch):
    """Capture outgoing email."""
    outbox = RecordingEmailService()
    monkeypatch.setattr(email_module, "_email_service", outbox)
    return outbox


@pytest.fixture(name="client")
def client_fixture(db_session: Session, outbox: RecordingEmailService):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from main import app
    from marketplace.rate_limit import limiter

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="make_user")
def make_user_fixture(db_session: Session):
    """Factory for users that skip the registration flow."""

    def _make_user(
        email: str,
        username: str,
        password: str = TEST_PASSWORD,
        role: UserRole = UserRole.USER,
        verified: bool = True,
    ) -> User:
        return UserService().create(
            db_session,
            email=email,
            username=username,
            password_hash=hash_password(password),
            role=role,
            status=UserStatus.ACTIVE if verified else UserStatus.INACTIVE,
            email_verified=verified,
        )

    return _make_user


@pytest.fixture(name="test_user")
def test_user_fixture(make_user) -> User:
    """An active, verified regular user."""
    return make_user("test@example.com", "tester")


@pytest.fixture(name="admin_user")
def admin_user_fixture(make_user) -> User:
    """An active, verified admin."""
    return make_user("admin@example.com", "admin", role=UserRole.ADMIN)


@pytest.fixture(name="login")
def login_fixture(client: TestClient):
    """Log a user in through the API; the client keeps the session cookies."""

    def _login(email: str, password: str = TEST_PASSWORD):
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response

    return _login
