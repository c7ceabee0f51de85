"""
Device pairing.

POST /pairing/initiate                 — agent starts a pairing flow
GET  /pairing/{pairing_id}/status      — agent polls until the device token appears
POST /pairing/{pairing_token}/complete — phone submits its push subscription
GET  /pair/{pairing_token}             — data for the phone's pairing page
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from afk_relay.config import settings
from afk_relay.database import get_db
from afk_relay.schemas.pairing import (
    PairingCompleteRequest,
    PairingCompleteResponse,
    PairingInitiateResponse,
    PairingStatusResponse,
    PairPageResponse,
)
from afk_relay.services import pairing_service

router = APIRouter(tags=["pairing"])


@router.post("/pairing/initiate", response_model=PairingInitiateResponse)
async def initiate_pairing(db: Session = Depends(get_db)) -> PairingInitiateResponse:
    session = pairing_service.initiate_pairing(db)
    return PairingInitiateResponse(pairing_id=session.id, pairing_token=session.pairing_token)


@router.get("/pairing/{pairing_id}/status", response_model=PairingStatusResponse)
async def pairing_status(pairing_id: str, db: Session = Depends(get_db)) -> PairingStatusResponse:
    """No auth: the response reveals only a flag and the token the poller is about to receive."""
    status = pairing_service.get_pairing_status(db, pairing_id)
    return PairingStatusResponse(complete=status.complete, device_token=status.device_token)


@router.post("/pairing/{pairing_token}/complete", response_model=PairingCompleteResponse)
async def complete_pairing(
    pairing_token: str,
    body: PairingCompleteRequest,
    db: Session = Depends(get_db),
) -> PairingCompleteResponse:
    pairing_service.complete_pairing(db, pairing_token, body.subscription)
    return PairingCompleteResponse(success=True)


@router.get("/pair/{pairing_token}", response_model=PairPageResponse)
async def pair_page(pairing_token: str, db: Session = Depends(get_db)) -> PairPageResponse:
    data = pairing_service.load_pairing_page(db, pairing_token, settings.VAPID_PUBLIC_KEY)
    return PairPageResponse(**data)
