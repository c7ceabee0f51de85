from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from afk_relay.core.errors import Unauthorized
from afk_relay.database import get_db
from afk_relay.models.pairing_session import PairingSession
from afk_relay.services import pairing_service

# auto_error=False: a missing header must be a 401 like every other bad credential
security = HTTPBearer(auto_error=False)


def get_device_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    return credentials.credentials


def get_current_device(
    device_token: str = Depends(get_device_token),
    db: Session = Depends(get_db),
) -> PairingSession:
    """Resolve the bearer device token to a completed pairing."""
    device = pairing_service.get_device(db, device_token)
    if device is None:
        raise Unauthorized("Invalid device token")
    return device
