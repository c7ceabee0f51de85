from fastapi import APIRouter

from afk_relay.config import settings
from afk_relay.core.errors import ConfigurationError
from afk_relay.schemas.pairing import VapidPublicKeyResponse

router = APIRouter(tags=["push"])


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_public_key() -> VapidPublicKeyResponse:
    """Return the VAPID public key so the device subscribes with the dispatcher's identity."""
    if not settings.VAPID_PUBLIC_KEY:
        raise ConfigurationError("VAPID public key not configured")
    return VapidPublicKeyResponse(public_key=settings.VAPID_PUBLIC_KEY)
