# conftest.py
import os
import random
import string

# settings are read at import time
os.environ.setdefault("APP_SECRET", "test-secret")
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "dev")

import pytest
from fastapi.testclient import TestClient

from restodesk.db import Base, get_db, make_engine, make_session_factory
from restodesk.main import app
from restodesk.models.core import User, UserRole
from restodesk.util.security import hash_pw

OWNER_PASSWORD = "owner-pass"


@pytest.fixture()
def session_factory():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def jprint(step, r):
    """Helper to print response and assert on failure."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json() if r.headers.get("content-type", "").startswith("application/json") else r.text


def make_user(db, username, role=UserRole.OWNER, password=OWNER_PASSWORD, active=True, **extra) -> User:
    u = User(
        username=username,
        name=username.title(),
        email=f"{username}@restaurant.com",
        role=role,
        pass_hash=hash_pw(password),
        active=active,
        **extra,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def login(client, username, password=OWNER_PASSWORD) -> dict:
    r = client.post("/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, f"/auth/login failed: {r.text}"
    return {"Authorization": f"Bearer {r.json()['accessToken']}"}


@pytest.fixture()
def owner(db):
    return make_user(db, "owner")


@pytest.fixture()
def auth_headers(client, owner):
    return login(client, owner.username)


@pytest.fixture()
def rng_suffix():
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
