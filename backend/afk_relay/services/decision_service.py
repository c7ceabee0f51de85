"""
Decision relay — the agent asks, the phone answers, the agent polls.

notify()           agent → create PendingDecision, then push it to the phone
get_decision_status() agent polls with its device token
submit_decision()  phone's notification handler resolves the decision

Expiry is never enforced by a sweeper; it is evaluated whenever a row is read
or written. The two paths deliberately disagree on which wins:

  * status: expired beats a recorded decision
  * submit: a recorded decision beats expiry (idempotent replay)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from afk_relay.config import settings
from afk_relay.core.clock import utcnow
from afk_relay.core.errors import BadRequest, Forbidden, NotFound, Unauthorized
from afk_relay.models.pairing_session import PairingSession
from afk_relay.models.pending_decision import DECISION_ALLOW, DECISIONS, PendingDecision
from afk_relay.services.push_service import DEFAULT_TITLE, NotificationPayload, PushDispatcher

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_DECIDED = "decided"
STATUS_EXPIRED = "expired"

SIMPLE_NOTIFICATION_TAG = "claude-code-notification"


@dataclass(frozen=True)
class DecisionStatus:
    status: str
    decision: str | None


@dataclass(frozen=True)
class SubmitResult:
    success: bool
    decision: str | None = None
    message: str | None = None


def _subscription_for(device: PairingSession) -> dict:
    subscription = device.subscription
    if not subscription:
        raise BadRequest("No push subscription found")
    return subscription


def build_decision_payload(decision: PendingDecision) -> NotificationPayload:
    return NotificationPayload(
        title=decision.title or DEFAULT_TITLE,
        body=decision.message,
        tag=decision.tool_use_id,
        require_interaction=True,
        renotify=False,
        actions=[{"action": DECISION_ALLOW, "title": "Allow"}],
        data={
            "decisionId": decision.id,
            "toolUseId": decision.tool_use_id,
            "type": "decision",
        },
    )


def notify(
    db: Session,
    dispatcher: PushDispatcher,
    device: PairingSession,
    *,
    title: str | None,
    message: str | None,
    tool_use_id: str | None,
    session_id: str | None,
) -> PendingDecision:
    """Create a pending decision and push it to the paired device.

    The row is committed before dispatch so the payload can carry its id. If
    dispatch raises, the row stays behind: the agent can still poll it, the
    phone just never hears about it.
    """
    if not message:
        raise BadRequest("Message is required")
    if not tool_use_id:
        raise BadRequest("tool_use_id is required")
    if not session_id:
        raise BadRequest("session_id is required")
    subscription = _subscription_for(device)

    now = utcnow()
    decision = PendingDecision(
        id=PendingDecision.generate_id(),
        device_token=device.device_token,
        tool_use_id=tool_use_id,
        claude_session_id=session_id,
        title=title,
        message=message,
        created_at=now,
        expires_at=now + timedelta(seconds=settings.DECISION_TTL_SECONDS),
    )
    db.add(decision)
    db.commit()
    db.refresh(decision)
    logger.info(
        "Decision %s created for tool_use_id=%s session=%s",
        decision.id,
        tool_use_id,
        session_id,
    )

    dispatcher.send(subscription, build_decision_payload(decision))
    return decision


def notify_simple(
    dispatcher: PushDispatcher,
    device: PairingSession,
    *,
    title: str | None,
    message: str | None,
) -> None:
    """Plain notification with nothing to answer (e.g. "Claude is waiting")."""
    if not message:
        raise BadRequest("Message is required")
    subscription = _subscription_for(device)
    dispatcher.send(
        subscription,
        NotificationPayload(
            title=title or DEFAULT_TITLE,
            body=message,
            tag=SIMPLE_NOTIFICATION_TAG,
            require_interaction=True,
        ),
    )


def get_decision_status(
    db: Session,
    decision_id: str,
    device_token: str,
    now: datetime | None = None,
) -> DecisionStatus:
    decision = db.query(PendingDecision).filter(PendingDecision.id == decision_id).first()
    if not decision:
        raise NotFound("Decision not found")
    if decision.device_token != device_token:
        raise Unauthorized("Decision belongs to another device")

    now = now or utcnow()
    if decision.is_expired(now):
        return DecisionStatus(status=STATUS_EXPIRED, decision=None)
    if decision.decision is not None:
        return DecisionStatus(status=STATUS_DECIDED, decision=decision.decision)
    return DecisionStatus(status=STATUS_PENDING, decision=None)


def _record_decision(db: Session, decision_id: str, value: str, now: datetime) -> bool:
    """Guarded write. Returns False when the decision was already set."""
    matched = (
        db.query(PendingDecision)
        .filter(
            PendingDecision.id == decision_id,
            PendingDecision.decision.is_(None),
        )
        .update(
            {PendingDecision.decision: value, PendingDecision.decided_at: now},
            synchronize_session=False,
        )
    )
    db.commit()
    return matched == 1


def submit_decision(
    db: Session,
    decision_id: str,
    tool_use_id: str | None,
    value: str | None,
    now: datetime | None = None,
) -> SubmitResult:
    if value not in DECISIONS:
        raise BadRequest('Invalid decision - must be "allow" or "dismiss"')
    if not tool_use_id:
        raise BadRequest("toolUseId is required")

    decision = db.query(PendingDecision).filter(PendingDecision.id == decision_id).first()
    if not decision:
        raise NotFound("Decision not found")

    if decision.tool_use_id != tool_use_id:
        logger.warning("Tool use ID mismatch on decision %s", decision_id)
        raise Forbidden("Tool use ID mismatch")

    if decision.decision is not None:
        return SubmitResult(success=True, decision=decision.decision, message="Decision already recorded")

    now = now or utcnow()
    if decision.is_expired(now):
        logger.info("Rejected %s for expired decision %s", value, decision_id)
        return SubmitResult(success=False, message="Decision has expired")

    if not _record_decision(db, decision_id, value, now):
        # Lost the race to a concurrent submit: report what was stored
        db.refresh(decision)
        return SubmitResult(success=True, decision=decision.decision, message="Decision already recorded")

    logger.info("Decision %s resolved: %s", decision_id, value)
    return SubmitResult(success=True, decision=value)
