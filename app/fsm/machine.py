"""
Webhook state transitions.
Each delivery logs the states it passes through so a single payment can be
traced from RECEIVED to its terminal state in the log drain.
"""

import logging
from typing import Any, Optional

from app.fsm.states import WebhookState

logger = logging.getLogger(__name__)


def log_transition(
    state: WebhookState,
    payment_id: Optional[str] = None,
    **fields: Any,
) -> WebhookState:
    """Record that a delivery reached `state`."""
    log = logger.info if state.is_terminal else logger.debug
    log(
        f"Razorpay webhook -> {state.value}" + (f" ({payment_id})" if payment_id else ""),
        extra={
            "extra": {
                "webhook_state": state.value,
                "status_code": state.status_code,
                "payment_id": payment_id,
                **fields,
            }
        },
    )
    return state
