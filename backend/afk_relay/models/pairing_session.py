import json
import secrets

from sqlalchemy import Column, DateTime, String, Text

from afk_relay.core.clock import utcnow
from afk_relay.database import Base


class PairingSession(Base):
    """Binds a one-time pairing flow to a device credential and push subscription.

    ``pairing_token`` is what the phone scans; ``id`` is what the agent polls.
    ``device_token`` and ``push_subscription`` are written together, exactly
    once, when the phone completes the handshake.
    """

    __tablename__ = "pairing_sessions"

    id = Column(String(32), primary_key=True)
    pairing_token = Column(String(64), unique=True, index=True, nullable=False)
    device_token = Column(String(64), unique=True, index=True, nullable=True)
    push_subscription = Column(Text, nullable=True)  # JSON: {"endpoint", "keys": {"p256dh", "auth"}}
    created_at = Column(DateTime, nullable=False, default=utcnow)
    completed_at = Column(DateTime, nullable=True)  # None = pairing in progress

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None

    @property
    def subscription(self) -> dict | None:
        if not self.push_subscription:
            return None
        return json.loads(self.push_subscription)

    @staticmethod
    def generate_id() -> str:
        """21-character URL-safe session id."""
        return secrets.token_urlsafe(16)[:21]

    @staticmethod
    def generate_token() -> str:
        """32-character URL-safe token, used for both pairing and device tokens."""
        return secrets.token_urlsafe(24)
