"""Agent-side HTTP client for the relay API."""

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


class RelayClientError(Exception):
    """Transport failure or non-2xx response from the relay."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class PairingInit:
    pairing_id: str
    pairing_token: str


@dataclass(frozen=True)
class PairingStatus:
    complete: bool
    device_token: str | None


@dataclass(frozen=True)
class DecisionStatus:
    status: str
    decision: str | None


class RelayClient:
    def __init__(
        self,
        base_url: str,
        device_token: str | None = None,
        *,
        timeout: float = 10,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.device_token = device_token
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RelayClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def pairing_url(self, pairing_token: str, app_url: str | None = None) -> str:
        """Phone-facing page for this pairing; served by the web app, not the API."""
        base = (app_url or self.base_url).rstrip("/")
        return f"{base}/pair/{pairing_token}"

    def _auth_headers(self) -> dict:
        if not self.device_token:
            raise RelayClientError("No device token configured")
        return {"Authorization": f"Bearer {self.device_token}"}

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            resp = self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            raise RelayClientError(
                f"{method} {path} returned {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise RelayClientError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise RelayClientError(f"{method} {path} returned invalid JSON") from exc

    # ── Pairing ──────────────────────────────────────────────────────────────

    def initiate_pairing(self) -> PairingInit:
        data = self._request("POST", "/api/pairing/initiate")
        return PairingInit(pairing_id=data["pairingId"], pairing_token=data["pairingToken"])

    def pairing_status(self, pairing_id: str) -> PairingStatus:
        data = self._request("GET", f"/api/pairing/{pairing_id}/status")
        return PairingStatus(complete=bool(data["complete"]), device_token=data.get("deviceToken"))

    # ── Notifications ────────────────────────────────────────────────────────

    def notify(self, *, title: str, message: str, tool_use_id: str, session_id: str) -> str:
        """Create a pending decision; returns its id."""
        data = self._request(
            "POST",
            "/api/notify",
            headers=self._auth_headers(),
            json={
                "title": title,
                "message": message,
                "tool_use_id": tool_use_id,
                "session_id": session_id,
            },
        )
        return data["decisionId"]

    def notify_simple(self, *, title: str, message: str) -> None:
        self._request(
            "POST",
            "/api/notify/simple",
            headers=self._auth_headers(),
            json={"title": title, "message": message},
        )

    def decision_status(self, decision_id: str) -> DecisionStatus:
        data = self._request("GET", f"/api/decision/{decision_id}/status", headers=self._auth_headers())
        return DecisionStatus(status=data["status"], decision=data.get("decision"))
