"""
Pairing handshake — all device credentials are minted here.

Flow:
  1. The agent calls initiate_pairing() and shows pairing_token to the phone
     (as a QR code) while polling get_pairing_status() with the session id.
  2. The phone subscribes to push and calls complete_pairing() with the
     token and its subscription.
  3. The next status poll returns the freshly minted device token.

complete_pairing() writes through a guarded UPDATE (… WHERE completed_at IS
NULL) so two concurrent completions can never mint two credentials.
"""

import json
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from afk_relay.core.clock import utcnow
from afk_relay.core.errors import AlreadyCompleted, ConfigurationError, InvalidSubscription, NotFound
from afk_relay.models.pairing_session import PairingSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairingStatus:
    complete: bool
    device_token: str | None


def initiate_pairing(db: Session) -> PairingSession:
    session = PairingSession(
        id=PairingSession.generate_id(),
        pairing_token=PairingSession.generate_token(),
        created_at=utcnow(),
    )
    db.add(session)
    try:
        db.commit()
    except IntegrityError:
        # Token collision: fatal for this request, no retry
        db.rollback()
        logger.error("Pairing session id/token collision")
        raise
    db.refresh(session)
    logger.info("Pairing session %s initiated", session.id)
    return session


def get_pairing_status(db: Session, pairing_id: str) -> PairingStatus:
    session = db.query(PairingSession).filter(PairingSession.id == pairing_id).first()
    if not session:
        raise NotFound("Pairing session not found")

    complete = session.is_complete
    return PairingStatus(
        complete=complete,
        device_token=session.device_token if complete else None,
    )


def _get_open_session(db: Session, pairing_token: str) -> PairingSession:
    session = db.query(PairingSession).filter(PairingSession.pairing_token == pairing_token).first()
    if not session:
        raise NotFound("Pairing session not found")
    if session.is_complete:
        raise AlreadyCompleted()
    return session


def _mark_completed(db: Session, pairing_token: str, device_token: str, subscription: dict) -> bool:
    """Guarded write. Returns False when another caller completed the session first."""
    matched = (
        db.query(PairingSession)
        .filter(
            PairingSession.pairing_token == pairing_token,
            PairingSession.completed_at.is_(None),
        )
        .update(
            {
                PairingSession.device_token: device_token,
                PairingSession.push_subscription: json.dumps(subscription),
                PairingSession.completed_at: utcnow(),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return matched == 1


def complete_pairing(db: Session, pairing_token: str, subscription: dict | None) -> None:
    session = _get_open_session(db, pairing_token)

    if not isinstance(subscription, dict) or not subscription.get("endpoint"):
        raise InvalidSubscription()

    try:
        completed = _mark_completed(db, pairing_token, PairingSession.generate_token(), subscription)
    except IntegrityError:
        db.rollback()
        logger.error("Device token collision while completing pairing %s", session.id)
        raise

    if not completed:
        logger.info("Pairing %s was completed concurrently; rejecting duplicate", session.id)
        raise AlreadyCompleted()

    logger.info("Pairing session %s completed", session.id)


def load_pairing_page(db: Session, pairing_token: str, vapid_public_key: str) -> dict:
    """Data the phone needs to subscribe before it calls complete_pairing()."""
    _get_open_session(db, pairing_token)
    if not vapid_public_key:
        raise ConfigurationError("Server not configured for push notifications")
    return {"pairing_token": pairing_token, "vapid_public_key": vapid_public_key}


def get_device(db: Session, device_token: str) -> PairingSession | None:
    """Resolve a bearer credential to its completed pairing, or None."""
    if not device_token:
        return None
    return (
        db.query(PairingSession)
        .filter(
            PairingSession.device_token == device_token,
            PairingSession.completed_at.isnot(None),
        )
        .first()
    )
