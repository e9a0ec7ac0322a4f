"""
Shared fixtures: a fresh FakeDatabase per test, seeded users and days, and an
API client wired to the same fake.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app
from security import pwd_context
from tests.fakes import FakeDatabase


@pytest.fixture(scope="session", autouse=True)
def fast_hashing():
    # minimum bcrypt cost keeps registration tests quick
    pwd_context.update(bcrypt__rounds=4)


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def make_user(db):
    def _make(name="Ada", email="ada@example.com", planner_start_date=None):
        doc = {
            "name": name,
            "email": email,
            "password_hash": "not-a-real-hash",
            "access_token": "",
            "planner_start_date": planner_start_date,
            "created_at": datetime.now(timezone.utc),
        }
        return str(db.user.insert_one(doc).inserted_id)
    return _make


@pytest.fixture
def user_id(make_user):
    return make_user()


@pytest.fixture
def make_days(db):
    """Insert days in the given order; positions and created_at follow that order."""
    def _make(user_id, *names):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        ids = []
        for i, name in enumerate(names):
            doc = {"user_id": user_id, "day_name": name, "position": i, "created_at": base + timedelta(minutes=i)}
            ids.append(str(db.day.insert_one(doc).inserted_id))
        return ids
    return _make


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    resp = client.post(
        "/users/register",
        json={"name": "Ada", "email": "ada@example.com", "password": "s3cret"},
    )
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}
