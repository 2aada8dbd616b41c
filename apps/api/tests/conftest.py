from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from famifirst.core.db import get_db
from famifirst.core.deps import get_clock, get_notifier
from famifirst.main import app
from famifirst.models.base import Base
from famifirst.models import entities  # noqa: F401
from famifirst.services.identity import create_user


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

START = datetime(2026, 3, 2, 9, 0, 0)


class FixedClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, notice) -> None:
        self.sent.append(notice)


class FailingNotifier:
    def send(self, notice) -> None:
        raise ConnectionError("broker unreachable")


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def clock():
    fixed = FixedClock(START)
    app.dependency_overrides[get_clock] = lambda: fixed
    yield fixed
    app.dependency_overrides.pop(get_clock, None)


@pytest.fixture
def notifier():
    recording = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: recording
    yield recording
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def client(clock, notifier):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client, email: str, password: str = "s3cret-pass", **extra) -> dict:
    resp = client.post("/v1/auth/register", json={"email": email, "password": password, **extra})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return {"user_id": body["user"]["id"], "token": body["session_token"], "headers": auth_headers(body["session_token"])}


def family_of(client, headers: dict) -> int:
    resp = client.get("/v1/families", headers=headers)
    assert resp.status_code == 200
    return resp.json()["items"][0]["id"]


def seed_user(db, email: str, now: datetime = START, password: str = "s3cret-pass"):
    user = create_user(db, email=email, password=password, first_name=None, last_name=None, now=now)
    db.commit()
    return user
