"""
Relay error taxonomy.

Services raise these; main.py renders every one of them as
``{"detail": ...}`` with the class's HTTP status. Nothing below the API layer
imports FastAPI.
"""


class RelayError(Exception):
    status_code: int = 500
    default_detail: str = "Internal error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BadRequest(RelayError):
    status_code = 400
    default_detail = "Bad request"


class InvalidSubscription(BadRequest):
    default_detail = "Invalid push subscription"


class Unauthorized(RelayError):
    status_code = 401
    default_detail = "Missing or invalid authorization header"


class Forbidden(RelayError):
    status_code = 403
    default_detail = "Forbidden"


class NotFound(RelayError):
    status_code = 404
    default_detail = "Not found"


class AlreadyCompleted(RelayError):
    status_code = 409
    default_detail = "Pairing session already completed"


class ConfigurationError(RelayError):
    status_code = 500
    default_detail = "VAPID keys not configured - cannot send push notifications"


class DispatchFailed(RelayError):
    status_code = 500
    default_detail = "Failed to send push notification"

    def __init__(self, detail: str | None = None, *, expired_subscription: bool = False) -> None:
        super().__init__(detail)
        # 404/410 from the push service: the browser revoked the subscription
        self.expired_subscription = expired_subscription
