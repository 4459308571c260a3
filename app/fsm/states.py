"""
Webhook State Definitions.
Lifecycle of a single Razorpay notification and the reconciliation outcomes.
"""

from enum import Enum
from typing import Optional


class RazorpayEvent(str, Enum):
    """Razorpay event names the webhook acts on."""

    PAYMENT_CAPTURED = "payment.captured"


class WebhookState(str, Enum):
    """
    States of one webhook delivery.

    RECEIVED -> VERIFIED -> ACKED
                         -> PLACEMENT_ATTEMPTED -> PLACED -> ACKED
                                                -> FAILED -> REFUND_ATTEMPTED -> ERROR_RESPONSE
    RECEIVED -> UNAUTHORIZED
    """

    RECEIVED = "RECEIVED"
    VERIFIED = "VERIFIED"
    UNAUTHORIZED = "UNAUTHORIZED"

    PLACEMENT_ATTEMPTED = "PLACEMENT_ATTEMPTED"
    PLACED = "PLACED"
    FAILED = "FAILED"
    REFUND_ATTEMPTED = "REFUND_ATTEMPTED"

    ACKED = "ACKED"
    ERROR_RESPONSE = "ERROR_RESPONSE"

    @property
    def is_terminal(self) -> bool:
        return self in (self.ACKED, self.ERROR_RESPONSE, self.UNAUTHORIZED)

    @property
    def status_code(self) -> Optional[int]:
        """HTTP status returned to Razorpay for terminal states."""
        codes = {
            self.ACKED: 200,
            self.ERROR_RESPONSE: 500,
            self.UNAUTHORIZED: 401,
        }
        return codes.get(self)


class ReconciliationStatus(str, Enum):
    """Outcome of reconciling one notification against the invoices table."""

    IGNORED = "IGNORED"                     # Not a payment.captured event
    ALREADY_EXISTS = "ALREADY_EXISTS"       # Order present, nothing to do
    PLACED = "PLACED"                       # Order recovered via place_stock_order
    PLACEMENT_FAILED = "PLACEMENT_FAILED"   # Order rejected, refund attempted

    @property
    def final_state(self) -> WebhookState:
        """Terminal webhook state reached with this outcome."""
        if self == self.PLACEMENT_FAILED:
            return WebhookState.ERROR_RESPONSE
        return WebhookState.ACKED
