"""
Web Push delivery service.

Uses pywebpush to send a single notification to one paired device.
The VAPID signing identity is read from settings on first use and kept for
the life of the process. Delivery failures are raised as DispatchFailed and
never retried here; the caller decides what a failed push means.
"""

import json
import logging
import os
import threading
from dataclasses import dataclass, field

import requests
from py_vapid import Vapid, VapidException
from pywebpush import WebPushException, webpush

from afk_relay.config import Settings, settings
from afk_relay.core.errors import ConfigurationError, DispatchFailed

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Claude Code"
DEFAULT_ICON = "/icon-192.png"
DEFAULT_BADGE = "/badge-72.png"


@dataclass
class NotificationPayload:
    """Flat push body understood by the device's notification handler."""

    title: str
    body: str
    icon: str | None = DEFAULT_ICON
    badge: str | None = DEFAULT_BADGE
    data: dict | None = None
    tag: str | None = None
    renotify: bool | None = None
    require_interaction: bool | None = None
    actions: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        out: dict = {"title": self.title, "body": self.body}
        optional = {
            "icon": self.icon,
            "badge": self.badge,
            "data": self.data,
            "tag": self.tag,
            "renotify": self.renotify,
            "requireInteraction": self.require_interaction,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        if self.actions:
            out["actions"] = self.actions
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class VapidIdentity:
    public_key: str
    private_key: str
    subject: str
    signer: Vapid


def _load_signer(private_key: str) -> Vapid:
    """Decode the VAPID private key the way pywebpush would (PEM/DER file or base64url string)."""
    try:
        if os.path.isfile(private_key):
            return Vapid.from_file(private_key_file=private_key)
        return Vapid.from_string(private_key=private_key)
    except (ValueError, VapidException) as exc:
        logger.error("VAPID private key could not be decoded: %s", exc)
        raise ConfigurationError("VAPID private key is invalid - cannot send push notifications") from exc


class PushDispatcher:
    """Sends notifications with a lazily initialised VAPID identity.

    The identity is resolved once under a lock; concurrent first callers all
    observe the same instance. An unconfigured dispatcher raises
    ConfigurationError on every send until the keys are present.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self._config = config or settings
        self._lock = threading.Lock()
        self._identity: VapidIdentity | None = None

    @property
    def identity(self) -> VapidIdentity:
        if self._identity is not None:
            return self._identity
        with self._lock:
            if self._identity is None:
                cfg = self._config
                if not (cfg.VAPID_PUBLIC_KEY and cfg.VAPID_PRIVATE_KEY and cfg.VAPID_SUBJECT):
                    raise ConfigurationError()
                self._identity = VapidIdentity(
                    public_key=cfg.VAPID_PUBLIC_KEY,
                    private_key=cfg.VAPID_PRIVATE_KEY,
                    subject=cfg.VAPID_SUBJECT,
                    signer=_load_signer(cfg.VAPID_PRIVATE_KEY),
                )
                logger.info("VAPID identity initialised (subject=%s)", cfg.VAPID_SUBJECT)
        return self._identity

    def send(self, subscription: dict, payload: NotificationPayload) -> None:
        identity = self.identity
        endpoint = subscription.get("endpoint")
        try:
            webpush(
                subscription_info={
                    "endpoint": endpoint,
                    "keys": dict(subscription.get("keys", {})),
                },
                data=payload.to_json(),
                vapid_private_key=identity.signer,
                vapid_claims={"sub": identity.subject},
            )
        except WebPushException as exc:
            status = exc.response.status_code if exc.response is not None else None
            gone = status in (404, 410)
            logger.warning("Push delivery failed for %s (status=%s): %s", endpoint, status, exc)
            raise DispatchFailed(expired_subscription=gone) from exc
        except requests.RequestException as exc:
            logger.warning("Push transport error for %s: %s", endpoint, exc)
            raise DispatchFailed() from exc
        except VapidException as exc:
            logger.error("VAPID claims rejected: %s", exc)
            raise ConfigurationError("VAPID subject is invalid - cannot send push notifications") from exc
        except ValueError as exc:
            # Undecodable p256dh/auth keys in the stored subscription
            logger.warning("Push payload could not be encrypted for %s: %s", endpoint, exc)
            raise DispatchFailed() from exc


dispatcher = PushDispatcher()


def get_dispatcher() -> PushDispatcher:
    return dispatcher
