"""Tests for /api/pairing endpoints and the pairing page data."""

import json

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from afk_relay.database import get_db
from afk_relay.main import app
from afk_relay.models.pairing_session import PairingSession
from afk_relay.tests.conftest import SUBSCRIPTION, initiate, pair_device


class TestInitiate:
    def test_initiate_returns_id_and_token(self, client: TestClient):
        data = initiate(client)
        assert set(data) == {"pairingId", "pairingToken"}
        assert data["pairingId"] != data["pairingToken"]
        assert len(data["pairingToken"]) >= 32

    def test_initiate_creates_open_session(self, client: TestClient, db):
        data = initiate(client)
        session = db.query(PairingSession).filter_by(id=data["pairingId"]).one()
        assert session.pairing_token == data["pairingToken"]
        assert session.created_at is not None
        assert session.completed_at is None
        assert session.device_token is None
        assert session.push_subscription is None

    def test_each_initiate_is_unique(self, client: TestClient):
        a, b = initiate(client), initiate(client)
        assert a["pairingId"] != b["pairingId"]
        assert a["pairingToken"] != b["pairingToken"]


class TestStatus:
    def test_status_before_completion(self, client: TestClient):
        data = initiate(client)
        resp = client.get(f"/api/pairing/{data['pairingId']}/status")
        assert resp.status_code == 200
        assert resp.json() == {"complete": False, "deviceToken": None}

    def test_status_unknown_id(self, client: TestClient):
        resp = client.get("/api/pairing/nope/status")
        assert resp.status_code == 404

    def test_status_does_not_accept_pairing_token(self, client: TestClient):
        data = initiate(client)
        resp = client.get(f"/api/pairing/{data['pairingToken']}/status")
        assert resp.status_code == 404

    def test_device_token_withheld_until_completed(self, client: TestClient, db):
        data = initiate(client)
        # A token sitting on an unfinished row must not leak through polling
        session = db.query(PairingSession).filter_by(id=data["pairingId"]).one()
        session.device_token = "half-written"
        db.commit()

        resp = client.get(f"/api/pairing/{data['pairingId']}/status")
        assert resp.json() == {"complete": False, "deviceToken": None}


class TestComplete:
    def test_complete_then_status_reveals_device_token(self, client: TestClient, db):
        data = initiate(client)
        resp = client.post(f"/api/pairing/{data['pairingToken']}/complete", json={"subscription": SUBSCRIPTION})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}

        status = client.get(f"/api/pairing/{data['pairingId']}/status").json()
        assert status["complete"] is True
        assert status["deviceToken"]

        session = db.query(PairingSession).filter_by(id=data["pairingId"]).one()
        db.refresh(session)
        assert session.device_token == status["deviceToken"]
        assert json.loads(session.push_subscription) == SUBSCRIPTION
        assert session.completed_at is not None

    def test_second_completion_rejected(self, client: TestClient, db):
        data = initiate(client)
        url = f"/api/pairing/{data['pairingToken']}/complete"
        assert client.post(url, json={"subscription": SUBSCRIPTION}).status_code == 200
        first_token = client.get(f"/api/pairing/{data['pairingId']}/status").json()["deviceToken"]

        resp = client.post(url, json={"subscription": {"endpoint": "https://push.example/other"}})
        assert resp.status_code == 409
        assert "already completed" in resp.json()["detail"]

        # No second credential minted, subscription untouched
        status = client.get(f"/api/pairing/{data['pairingId']}/status").json()
        assert status["deviceToken"] == first_token

    def test_complete_unknown_token(self, client: TestClient):
        resp = client.post("/api/pairing/unknown/complete", json={"subscription": SUBSCRIPTION})
        assert resp.status_code == 404

    def test_complete_requires_endpoint(self, client: TestClient):
        data = initiate(client)
        resp = client.post(
            f"/api/pairing/{data['pairingToken']}/complete",
            json={"subscription": {"keys": {"p256dh": "x", "auth": "y"}}},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid push subscription"

    def test_complete_requires_subscription(self, client: TestClient):
        data = initiate(client)
        resp = client.post(f"/api/pairing/{data['pairingToken']}/complete", json={})
        assert resp.status_code == 400

    def test_invalid_subscription_leaves_session_open(self, client: TestClient):
        data = initiate(client)
        client.post(f"/api/pairing/{data['pairingToken']}/complete", json={"subscription": {}})
        resp = client.post(f"/api/pairing/{data['pairingToken']}/complete", json={"subscription": SUBSCRIPTION})
        assert resp.status_code == 200

    def test_device_tokens_are_unique(self, client: TestClient):
        assert pair_device(client) != pair_device(client)


class TestPairPage:
    def test_pair_page_returns_key(self, client: TestClient):
        data = initiate(client)
        resp = client.get(f"/api/pair/{data['pairingToken']}")
        assert resp.status_code == 200
        assert resp.json() == {"pairingToken": data["pairingToken"], "vapidPublicKey": "test-public-key"}

    def test_pair_page_unknown_token(self, client: TestClient):
        assert client.get("/api/pair/unknown").status_code == 404

    def test_pair_page_after_completion(self, client: TestClient):
        data = initiate(client)
        client.post(f"/api/pairing/{data['pairingToken']}/complete", json={"subscription": SUBSCRIPTION})
        assert client.get(f"/api/pair/{data['pairingToken']}").status_code == 409

    def test_pair_page_without_vapid_key(self, client: TestClient, monkeypatch):
        import afk_relay.api.pairing as pairing_module

        monkeypatch.setattr(pairing_module.settings, "VAPID_PUBLIC_KEY", "")
        data = initiate(client)
        resp = client.get(f"/api/pair/{data['pairingToken']}")
        assert resp.status_code == 500


class TestVapidPublicKey:
    def test_returns_public_key(self, client: TestClient):
        resp = client.get("/api/vapid-public-key")
        assert resp.status_code == 200
        assert resp.json() == {"publicKey": "test-public-key"}

    def test_unconfigured_key(self, client: TestClient, monkeypatch):
        import afk_relay.api.vapid as vapid_module

        monkeypatch.setattr(vapid_module.settings, "VAPID_PUBLIC_KEY", "")
        resp = client.get("/api/vapid-public-key")
        assert resp.status_code == 500
        assert "not configured" in resp.json()["detail"]


class TestHealth:
    def test_health(self, client: TestClient):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "database": "connected", "push": "configured"}

    def test_degraded_without_vapid_keys(self, client: TestClient, monkeypatch):
        import afk_relay.api.health as health_module

        monkeypatch.setattr(health_module.settings, "VAPID_PRIVATE_KEY", "")
        resp = client.get("/health")
        assert resp.json() == {"status": "degraded", "database": "connected", "push": "unconfigured"}

    def test_unhealthy_when_database_unreachable(self, client: TestClient):
        class BrokenSession:
            def execute(self, *args, **kwargs):
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        app.dependency_overrides[get_db] = lambda: BrokenSession()
        body = client.get("/health").json()
        assert body["status"] == "unhealthy"
        assert body["database"] == "disconnected"
