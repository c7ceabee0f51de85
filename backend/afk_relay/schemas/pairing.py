from pydantic import BaseModel, Field


class PairingInitiateResponse(BaseModel):
    pairing_id: str = Field(..., alias="pairingId")
    pairing_token: str = Field(..., alias="pairingToken")

    model_config = {"populate_by_name": True}


class PairingStatusResponse(BaseModel):
    complete: bool
    # Withheld until the handshake has completed
    device_token: str | None = Field(None, alias="deviceToken")

    model_config = {"populate_by_name": True}


class PairingCompleteRequest(BaseModel):
    # Browser PushSubscription.toJSON(): {"endpoint": str, "keys": {"p256dh": str, "auth": str}}
    subscription: dict | None = None


class PairingCompleteResponse(BaseModel):
    success: bool


class PairPageResponse(BaseModel):
    pairing_token: str = Field(..., alias="pairingToken")
    vapid_public_key: str = Field(..., alias="vapidPublicKey")

    model_config = {"populate_by_name": True}


class VapidPublicKeyResponse(BaseModel):
    public_key: str = Field(..., alias="publicKey")

    model_config = {"populate_by_name": True}
