"""
Pytest fixtures shared across all test modules.
Uses an in-memory SQLite database with StaticPool so all connections
share a single in-memory DB, and a recording push dispatcher so no
notification ever leaves the process.
"""

import os

# Set env vars BEFORE any afk_relay module is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["VAPID_PUBLIC_KEY"] = "test-public-key"
os.environ["VAPID_PRIVATE_KEY"] = "test-private-key"
os.environ["VAPID_SUBJECT"] = "mailto:test@example.com"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Import app modules AFTER env vars are set
from afk_relay.core.errors import DispatchFailed  # noqa: E402
from afk_relay.database import Base, get_db  # noqa: E402
from afk_relay.main import app  # noqa: E402
from afk_relay.services.push_service import get_dispatcher  # noqa: E402

# Single shared in-memory SQLite engine — StaticPool ensures all
# connections share the same DB instance.
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SUBSCRIPTION = {
    "endpoint": "https://push.example/abc",
    "keys": {"p256dh": "client-public-key", "auth": "client-auth-secret"},
}


class RecordingDispatcher:
    """Stands in for PushDispatcher; records every send and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[tuple[dict, dict]] = []
        self.fail = False

    def send(self, subscription: dict, payload) -> None:
        if self.fail:
            raise DispatchFailed()
        self.sent.append((subscription, payload.to_dict()))


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture()
def client(db, dispatcher):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def initiate(client: TestClient) -> dict:
    resp = client.post("/api/pairing/initiate")
    assert resp.status_code == 200, f"Initiate failed: {resp.json()}"
    return resp.json()


def pair_device(client: TestClient, subscription: dict | None = None) -> str:
    """Run the whole pairing handshake and return the minted device token."""
    init = initiate(client)
    resp = client.post(
        f"/api/pairing/{init['pairingToken']}/complete",
        json={"subscription": subscription or SUBSCRIPTION},
    )
    assert resp.status_code == 200, f"Complete failed: {resp.json()}"
    status = client.get(f"/api/pairing/{init['pairingId']}/status").json()
    return status["deviceToken"]


def device_headers(device_token: str) -> dict:
    return {"Authorization": f"Bearer {device_token}"}


def notify(client: TestClient, device_token: str, **overrides):
    body = {
        "title": "Confirm",
        "message": "Run rm -rf?",
        "tool_use_id": "tool42",
        "session_id": "sess1",
    }
    body.update(overrides)
    return client.post("/api/notify", json=body, headers=device_headers(device_token))
