"""Pytest fixtures for SecureContact tests."""

import os

import bcrypt

# The database engine is created at import time, so the environment must be
# in place before any securecontact module is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret-for-unit-tests"
os.environ["ADMIN_PASSWORD_HASH"] = bcrypt.hashpw(b"correct-horse", bcrypt.gensalt(rounds=4)).decode("utf-8")
os.environ["BAN_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["CONTACT_RATE_LIMIT_MAX_REQUESTS"] = "1000"
os.environ["LOGIN_RATE_LIMIT_MAX_REQUESTS"] = "1000"
for name in ("ENCRYPTION_KEY", "RECAPTCHA_SECRET_KEY", "ADMIN_PASSWORD"):
    os.environ[name] = ""

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from securecontact.shared.database import Base, SessionLocal, engine  # noqa: E402
from securecontact.contact import database as contact_models  # noqa: E402,F401
from securecontact.security import database as security_models  # noqa: E402,F401

ADMIN_PASSWORD = "correct-horse"


class FakeClock:
    """Controllable replacement for utcnow()."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_database():
    """Give every test empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client():
    """TestClient with startup/shutdown events run."""
    from securecontact.app import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers(client) -> dict:
    response = client.post("/api/login", json={"password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
