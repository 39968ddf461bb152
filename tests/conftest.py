import os
from unittest.mock import AsyncMock, patch

# Must be in place before profrate modules are imported
os.environ.setdefault("PYTEST_RUNNING", "1")
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_PARALLELISM", "1")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("SEED_SAMPLE_DATA", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from profrate.api.main import app
from profrate.db import models, schemas
from profrate.db.database import SessionLocal, engine
from profrate.db.repositories import reviews as reviews_repo
from profrate.utils.feature_flags import refresh_feature_flag_cache
from profrate.utils.passwords import hash_password

DEFAULT_PASSWORD = "Str0ng!Passw0rd"

_ENV_TO_CLEAR = [
    "RECAPTCHA_SECRET_KEY",
    "ADMIN_USERNAMES",
    "ADMIN_EMAILS",
    "RESEND_API_KEY",
    "SMTP_HOST",
    "TRUST_PROXY_HEADERS",
    "APP_ENV",
    "CSRF_PROTECTION_ENABLED",
    "REQUIRE_EMAIL_VERIFICATION",
    "REGISTRATION_ENABLED",
    "LOGIN_MAX_FAILED_ATTEMPTS",
    "LOGIN_MAX_ATTEMPTS",
    "REGISTER_MAX_PER_HOUR",
]


@pytest.fixture(scope="session", autouse=True)
def create_schema_once():
    """Create all tables once per test session (in-memory SQLite)."""
    models.Base.metadata.create_all(bind=engine)
    yield
    models.Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_data():
    """Empty every table between tests."""
    connection = engine.connect()
    trans = connection.begin()
    for table in reversed(models.Base.metadata.sorted_tables):
        connection.execute(table.delete())
    trans.commit()
    connection.close()
    yield


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in _ENV_TO_CLEAR:
        monkeypatch.delenv(name, raising=False)
    # Most tests post several reviews in a row
    monkeypatch.setenv("REVIEW_MIN_INTERVAL_SECONDS", "0")
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def user_factory(db_session: Session):
    def _create(
        username: str,
        role: str = models.ROLE_STUDENT,
        password: str = DEFAULT_PASSWORD,
        email: str = None,
        email_verified: bool = False,
        password_hash: str = None,
    ):
        user = models.User(
            username=username.lower(),
            password_hash=password_hash or hash_password(password),
            role=role,
            email=email.lower() if email else None,
            email_verified=email_verified,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def doctor_factory(db_session: Session):
    def _create(name: str = "Dr. Ada Lovelace", department: str = "Computer Science", **extra):
        doctor = models.Doctor(name=name, department=department, **extra)
        db_session.add(doctor)
        db_session.commit()
        db_session.refresh(doctor)
        return doctor
    return _create


@pytest.fixture
def review_factory(db_session: Session):
    def _create(doctor, score: int = 4, **overrides):
        payload = {factor: score for factor in schemas.RATING_FACTORS}
        payload.update(overrides)
        return reviews_repo.create_review(db_session, doctor.id, schemas.ReviewCreate(**payload))
    return _create


@pytest.fixture
def email_spy():
    """Replace the account email service everywhere routes look it up."""
    spy = AsyncMock()
    spy.send_verification_email.return_value = {"success": True}
    spy.send_password_reset_email.return_value = {"success": True}
    spy.send_username_reminder.return_value = {"success": True}
    with patch("profrate.api.auth.get_account_email_service", return_value=spy), \
            patch("profrate.api.users.get_account_email_service", return_value=spy):
        yield spy


@pytest.fixture
def client():
    return TestClient(app)


def csrf_headers(client: TestClient) -> dict:
    token = client.get("/api/auth/csrf-token").json()["csrf_token"]
    return {"X-CSRF-Token": token}


def login(client: TestClient, username: str, password: str = DEFAULT_PASSWORD) -> dict:
    """Sign `client` in and return headers carrying a valid CSRF token."""
    headers = csrf_headers(client)
    r = client.post("/api/auth/login", json={"username": username, "password": password}, headers=headers)
    assert r.status_code == 200, r.text
    return headers


@pytest.fixture
def admin_client(client, user_factory):
    user = user_factory("admin", role=models.ROLE_ADMIN, email="admin@example.com", email_verified=True)
    client.headers.update(login(client, user.username))
    client.user = user
    return client


@pytest.fixture
def student_client(client, user_factory):
    user = user_factory("student1", role=models.ROLE_STUDENT, email="student1@example.com", email_verified=True)
    client.headers.update(login(client, user.username))
    client.user = user
    return client


@pytest.fixture
def teacher_client(client, user_factory):
    user = user_factory("teacher1", role=models.ROLE_TEACHER)
    client.headers.update(login(client, user.username))
    client.user = user
    return client


@pytest.fixture
def get_csrf():
    return csrf_headers


@pytest.fixture
def login_as():
    return login
