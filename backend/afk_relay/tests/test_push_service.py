"""Tests for the Web Push dispatcher. pywebpush is fully mocked."""

import base64
import binascii
import json
import threading

import pytest
import requests
from py_vapid import Vapid
from pywebpush import WebPushException

from afk_relay.config import Settings
from afk_relay.core.errors import ConfigurationError, DispatchFailed
from afk_relay.services import push_service
from afk_relay.services.push_service import NotificationPayload, PushDispatcher
from afk_relay.tests.conftest import SUBSCRIPTION

# Raw P-256 scalar, base64url without padding, as produced by `vapid --gen`
PRIVATE_KEY = base64.urlsafe_b64encode(bytes(range(1, 33))).rstrip(b"=").decode()


def _settings(**overrides) -> Settings:
    values = {
        "VAPID_PUBLIC_KEY": "pub",
        "VAPID_PRIVATE_KEY": PRIVATE_KEY,
        "VAPID_SUBJECT": "mailto:ops@example.com",
    }
    values.update(overrides)
    return Settings(**values)


class _FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


@pytest.fixture()
def webpush_calls(monkeypatch):
    calls: list[dict] = []
    monkeypatch.setattr(push_service, "webpush", lambda **kwargs: calls.append(kwargs))
    return calls


class TestNotificationPayload:
    def test_wire_names(self):
        payload = NotificationPayload(
            title="Confirm",
            body="Run it?",
            tag="tool42",
            require_interaction=True,
            renotify=False,
            actions=[{"action": "allow", "title": "Allow"}],
            data={"decisionId": "d1", "toolUseId": "tool42", "type": "decision"},
        )
        assert payload.to_dict() == {
            "title": "Confirm",
            "body": "Run it?",
            "icon": "/icon-192.png",
            "badge": "/badge-72.png",
            "tag": "tool42",
            "renotify": False,
            "requireInteraction": True,
            "actions": [{"action": "allow", "title": "Allow"}],
            "data": {"decisionId": "d1", "toolUseId": "tool42", "type": "decision"},
        }

    def test_unset_fields_omitted(self):
        assert NotificationPayload(title="t", body="b", icon=None, badge=None).to_dict() == {"title": "t", "body": "b"}


class TestDispatcherConfiguration:
    @pytest.mark.parametrize("missing", ["VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY", "VAPID_SUBJECT"])
    def test_missing_credentials_fail_fast(self, missing, webpush_calls):
        dispatcher = PushDispatcher(_settings(**{missing: ""}))
        with pytest.raises(ConfigurationError):
            dispatcher.send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        assert webpush_calls == []

    @pytest.mark.parametrize("bad_key", ["not-a-key", "priv", "AAAA"])
    def test_undecodable_private_key_is_configuration_error(self, bad_key, webpush_calls):
        cfg = _settings(VAPID_PRIVATE_KEY=bad_key)
        dispatcher = PushDispatcher(cfg)
        with pytest.raises(ConfigurationError):
            dispatcher.send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        assert webpush_calls == []

        # The failure is not cached: fixing the key makes the next send work
        cfg.VAPID_PRIVATE_KEY = PRIVATE_KEY
        dispatcher.send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        assert len(webpush_calls) == 1

    def test_unconfigured_is_checked_on_every_call(self, webpush_calls):
        cfg = _settings(VAPID_PRIVATE_KEY="")
        dispatcher = PushDispatcher(cfg)
        with pytest.raises(ConfigurationError):
            dispatcher.send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))

        cfg.VAPID_PRIVATE_KEY = PRIVATE_KEY
        dispatcher.send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        assert len(webpush_calls) == 1

    def test_identity_initialised_once_under_race(self):
        dispatcher = PushDispatcher(_settings())
        seen = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            seen.append(dispatcher.identity)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(seen) == 8
        assert all(identity is seen[0] for identity in seen)

    def test_configuration_not_reread_after_init(self, webpush_calls):
        cfg = _settings()
        dispatcher = PushDispatcher(cfg)
        dispatcher.send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        cfg.VAPID_PRIVATE_KEY = ""
        dispatcher.send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        first, second = (c["vapid_private_key"] for c in webpush_calls)
        assert isinstance(first, Vapid)
        assert first is second


class TestDispatcherSend:
    def test_send_delegates_to_webpush(self, webpush_calls):
        dispatcher = PushDispatcher(_settings())
        dispatcher.send(SUBSCRIPTION, NotificationPayload(title="Confirm", body="Run it?", tag="tool42"))

        assert len(webpush_calls) == 1
        call = webpush_calls[0]
        assert call["subscription_info"] == {"endpoint": SUBSCRIPTION["endpoint"], "keys": SUBSCRIPTION["keys"]}
        assert isinstance(call["vapid_private_key"], Vapid)
        assert call["vapid_claims"] == {"sub": "mailto:ops@example.com"}
        body = json.loads(call["data"])
        assert body["title"] == "Confirm"
        assert body["tag"] == "tool42"

    @pytest.mark.parametrize("status", [404, 410])
    def test_expired_subscription(self, monkeypatch, status):
        def fail(**kwargs):
            raise WebPushException("Push failed", response=_FakeResponse(status))

        monkeypatch.setattr(push_service, "webpush", fail)
        with pytest.raises(DispatchFailed) as excinfo:
            PushDispatcher(_settings()).send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        assert excinfo.value.expired_subscription is True

    def test_push_service_error(self, monkeypatch):
        def fail(**kwargs):
            raise WebPushException("Push failed", response=_FakeResponse(500))

        monkeypatch.setattr(push_service, "webpush", fail)
        with pytest.raises(DispatchFailed) as excinfo:
            PushDispatcher(_settings()).send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        assert excinfo.value.expired_subscription is False

    def test_network_error(self, monkeypatch):
        attempts = []

        def fail(**kwargs):
            attempts.append(1)
            raise requests.ConnectionError("unreachable")

        monkeypatch.setattr(push_service, "webpush", fail)
        with pytest.raises(DispatchFailed):
            PushDispatcher(_settings()).send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        # No retry
        assert attempts == [1]

    def test_undecodable_subscription_keys(self, monkeypatch):
        def fail(**kwargs):
            raise binascii.Error("Invalid base64-encoded string")

        monkeypatch.setattr(push_service, "webpush", fail)
        with pytest.raises(DispatchFailed) as excinfo:
            PushDispatcher(_settings()).send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
        assert excinfo.value.expired_subscription is False

    def test_malformed_subscription_fails_before_any_request(self, monkeypatch):
        """Real pywebpush: keys that are not a P-256 point never reach the network."""

        def no_network(*args, **kwargs):
            raise AssertionError("push service must not be contacted")

        monkeypatch.setattr(requests, "post", no_network)
        subscription = {
            "endpoint": "https://push.example/abc",
            "keys": {"p256dh": "client-public-key", "auth": "client-auth-secret"},
        }
        with pytest.raises(DispatchFailed):
            PushDispatcher(_settings()).send(subscription, NotificationPayload(title="t", body="b"))
        assert subscription["keys"]["p256dh"] == "client-public-key"

    def test_unusable_subject_is_configuration_error(self, monkeypatch):
        monkeypatch.setattr(requests, "post", lambda *args, **kwargs: pytest.fail("push service contacted"))
        dispatcher = PushDispatcher(_settings(VAPID_SUBJECT="ops team"))
        with pytest.raises(ConfigurationError):
            dispatcher.send(SUBSCRIPTION, NotificationPayload(title="t", body="b"))
