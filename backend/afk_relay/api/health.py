import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from afk_relay.config import settings
from afk_relay.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _push_state() -> str:
    if settings.VAPID_PUBLIC_KEY and settings.VAPID_PRIVATE_KEY and settings.VAPID_SUBJECT:
        return "configured"
    return "unconfigured"


@router.get("/health")
async def health_check(db: Session = Depends(get_db)) -> dict:
    """Store reachability plus whether notifications can be signed at all.

    Without VAPID keys pairing still works but every notify fails, so the relay
    reports itself as degraded rather than healthy.
    """
    push = _push_state()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Health check: database unreachable: %s", exc)
        return {"status": "unhealthy", "database": "disconnected", "push": push, "error": str(exc)}

    status = "healthy" if push == "configured" else "degraded"
    return {"status": status, "database": "connected", "push": push}
