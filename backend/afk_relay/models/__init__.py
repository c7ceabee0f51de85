from afk_relay.models.pairing_session import PairingSession
from afk_relay.models.pending_decision import PendingDecision

__all__ = ["PairingSession", "PendingDecision"]
