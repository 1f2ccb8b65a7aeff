from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

from timesheet_api.main import create_app
from timesheet_api.settings import Settings
from timesheet_api.users import UserDirectory, demo_users

# Wednesday; its week runs 2025-01-06 .. 2025-01-12
TODAY = date(2025, 1, 8)

JOHN = ("john@example.com", "password123")
JANE = ("jane@example.com", "password123")
ADMIN = ("admin@example.com", "admin123")


def fixed_clock() -> date:
    return TODAY


@pytest.fixture(scope="session")
def user_directory() -> UserDirectory:
    # Hashing is slow, build the demo accounts once.
    return UserDirectory(demo_users())


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        persistence_backend="json",
        timesheets_file=str(tmp_path / "data" / "timesheets.json"),
        users_file=str(tmp_path / "data" / "users.json"),
        cors_allow_origins=["*"],
        token_ttl_minutes=60,
        elevated_role="admin",
        strict_persistence=False,
        log_level="INFO",
        host="127.0.0.1",
        port=5000,
    )


@pytest.fixture
def make_client(settings, user_directory) -> Callable[..., TestClient]:
    def _make(repository=None, **overrides) -> TestClient:
        app = create_app(
            replace(settings, **overrides), repository=repository, users=user_directory, clock=fixed_clock
        )
        return TestClient(app, raise_server_exceptions=False)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


def login(client: TestClient, credentials) -> Dict[str, str]:
    email, password = credentials
    res = client.post("/api/auth/login", json={"email": email, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['token']}"}


@pytest.fixture
def john(client) -> Dict[str, str]:
    return login(client, JOHN)


@pytest.fixture
def jane(client) -> Dict[str, str]:
    return login(client, JANE)


@pytest.fixture
def admin(client) -> Dict[str, str]:
    return login(client, ADMIN)
