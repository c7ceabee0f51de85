import secrets

from sqlalchemy import Column, DateTime, String, Text

from afk_relay.core.clock import utcnow
from afk_relay.database import Base

DECISION_ALLOW = "allow"
DECISION_DISMISS = "dismiss"
DECISIONS = (DECISION_ALLOW, DECISION_DISMISS)


class PendingDecision(Base):
    """One outstanding approval request for a single tool invocation."""

    __tablename__ = "pending_decisions"

    id = Column(String(32), primary_key=True)
    device_token = Column(String(64), nullable=False, index=True)
    tool_use_id = Column(String(255), nullable=False)
    claude_session_id = Column(String(255), nullable=False)  # correlation only, never authorises anything
    title = Column(Text, nullable=True)
    message = Column(Text, nullable=False)
    decision = Column(String(16), nullable=True)  # None = unset; write-once
    created_at = Column(DateTime, nullable=False, default=utcnow)
    decided_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=False)

    def is_expired(self, now) -> bool:
        return now > self.expires_at

    @staticmethod
    def generate_id() -> str:
        return secrets.token_urlsafe(16)[:21]
