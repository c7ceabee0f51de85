"""
Agent → phone notifications.

POST /notify         — create a pending decision and push it (Bearer device token)
POST /notify/simple  — informational push, nothing to answer (Bearer device token)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from afk_relay.api.deps import get_current_device
from afk_relay.database import get_db
from afk_relay.models.pairing_session import PairingSession
from afk_relay.schemas.decision import NotifyRequest, NotifyResponse, SimpleNotifyRequest, SimpleNotifyResponse
from afk_relay.services import decision_service
from afk_relay.services.push_service import PushDispatcher, get_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notify", tags=["notify"])


@router.post("", response_model=NotifyResponse)
async def notify(
    body: NotifyRequest,
    device: PairingSession = Depends(get_current_device),
    dispatcher: PushDispatcher = Depends(get_dispatcher),
    db: Session = Depends(get_db),
) -> NotifyResponse:
    decision = decision_service.notify(
        db,
        dispatcher,
        device,
        title=body.title,
        message=body.message,
        tool_use_id=body.tool_use_id,
        session_id=body.session_id,
    )
    return NotifyResponse(success=True, decision_id=decision.id)


@router.post("/simple", response_model=SimpleNotifyResponse)
async def notify_simple(
    body: SimpleNotifyRequest,
    device: PairingSession = Depends(get_current_device),
    dispatcher: PushDispatcher = Depends(get_dispatcher),
) -> SimpleNotifyResponse:
    decision_service.notify_simple(dispatcher, device, title=body.title, message=body.message)
    return SimpleNotifyResponse(success=True)
