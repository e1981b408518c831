"""Shared test fixtures for EcoTrack tests."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from ecotrack.app import Services, create_app
from ecotrack.config import Config
from ecotrack.models.db import Database

TEST_JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"


class FakeClock:
    """Callable clock the ledger reads "now" from; tests move it between days."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def set_day(self, year: int, month: int, day: int, hour: int = 12) -> None:
        self.now = datetime(year, month, day, hour, 0)

    def advance(self, days: int = 1) -> None:
        self.now = self.now + timedelta(days=days)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0))


@pytest.fixture
def database(tmp_path: Path):
    db = Database(f"sqlite:///{tmp_path / 'ecotrack.db'}")
    db.init()
    yield db
    db.dispose()


@pytest.fixture
def services(database, clock) -> Services:
    return Services(database, clock=clock)


@pytest.fixture
def user_id(services) -> int:
    return services.users.create_user("alice", "alice@example.com", "s3cret-pass")["id"]


@pytest.fixture
def other_user_id(services) -> int:
    return services.users.create_user("bob", "bob@example.com", "b0b-pass")["id"]


@pytest.fixture
def app(tmp_path: Path, clock):
    test_config = type("TestConfig", (Config,), {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'api.db'}",
        "SQL_ECHO": False,
        "JWT_SECRET_KEY": TEST_JWT_SECRET,
        "ECOTRACK_TIMEZONE": "",
        "CORS_ORIGINS": "*",
    })
    flask_app = create_app(test_config, clock=clock)
    yield flask_app
    flask_app.extensions["ecotrack"].database.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


def register_and_login(client, username: str = "alice", password: str = "s3cret-pass"):
    """Register a user through the API and return (user_id, auth headers)."""
    resp = client.post("/api/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
    })
    assert resp.status_code == 201, resp.get_json()
    user_id = resp.get_json()["userId"]

    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.get_json()
    token = resp.get_json()["access_token"]
    return user_id, {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth(client):
    return register_and_login(client)


@pytest.fixture
def login(client):
    def _login(username: str = "alice", password: str = "s3cret-pass"):
        return register_and_login(client, username, password)
    return _login
