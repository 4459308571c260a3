"""FSM package for webhook state tracking."""

from app.fsm.states import RazorpayEvent, WebhookState, ReconciliationStatus
from app.fsm.machine import log_transition

__all__ = ["RazorpayEvent", "WebhookState", "ReconciliationStatus", "log_transition"]
