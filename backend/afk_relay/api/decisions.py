"""
Decision polling and resolution.

GET  /decision/{decision_id}/status  — agent polls (Bearer device token)
POST /decision/{decision_id}/submit  — phone's notification handler answers
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from afk_relay.api.deps import get_current_device
from afk_relay.database import get_db
from afk_relay.models.pairing_session import PairingSession
from afk_relay.schemas.decision import DecisionStatusResponse, DecisionSubmitRequest, DecisionSubmitResponse
from afk_relay.services import decision_service

router = APIRouter(prefix="/decision", tags=["decisions"])


@router.get("/{decision_id}/status", response_model=DecisionStatusResponse)
async def decision_status(
    decision_id: str,
    device: PairingSession = Depends(get_current_device),
    db: Session = Depends(get_db),
) -> DecisionStatusResponse:
    result = decision_service.get_decision_status(db, decision_id, device.device_token)
    return DecisionStatusResponse(status=result.status, decision=result.decision)


@router.post(
    "/{decision_id}/submit",
    response_model=DecisionSubmitResponse,
    response_model_exclude_none=True,
)
async def submit_decision(
    decision_id: str,
    body: DecisionSubmitRequest,
    db: Session = Depends(get_db),
) -> DecisionSubmitResponse:
    """Unauthenticated: the notification handler proves itself with the toolUseId it was shown."""
    result = decision_service.submit_decision(db, decision_id, body.tool_use_id, body.decision)
    return DecisionSubmitResponse(success=result.success, decision=result.decision, message=result.message)
