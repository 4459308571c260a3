"""
Razorpay Webhook Handler.
Verifies signatures and recovers stock orders for captured payments.
"""

import json
import logging

from fastapi import APIRouter, Request, HTTPException, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import get_db
from app.fsm.machine import log_transition
from app.fsm.states import RazorpayEvent, ReconciliationStatus, WebhookState
from app.services.order_service import OrderService, ReconciliationOutcome
from app.services.razorpay_service import RazorpayService, verify_razorpay_signature

router = APIRouter()
logger = logging.getLogger(__name__)


async def verify_webhook_signature(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> bytes:
    """
    Authenticate the delivery and return its raw body.

    Declared ahead of get_db on the route, so a forged request is
    answered 401 before any database session is opened.
    """
    log_transition(WebhookState.RECEIVED)

    # Raw body; the signature covers the exact bytes
    body = await request.body()
    signature = request.headers.get("X-Razorpay-Signature")

    if not verify_razorpay_signature(body, signature, settings.razorpay_webhook_secret):
        logger.error("Invalid Razorpay webhook signature")
        log_transition(WebhookState.UNAUTHORIZED)
        raise HTTPException(status_code=401, detail="Invalid signature")

    log_transition(WebhookState.VERIFIED)
    return body


@router.post("/razorpay")
async def razorpay_webhook(
    body: bytes = Depends(verify_webhook_signature),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Handle Razorpay webhook events.

    Only payment.captured is acted on: it is the safety net for orders
    whose checkout callback never reached the backend.
    """
    try:
        payload = json.loads(body)
        event_type = payload.get("event")
        logger.info(f"Razorpay webhook received: {event_type}")

        if event_type != RazorpayEvent.PAYMENT_CAPTURED.value:
            logger.info(f"Unhandled Razorpay event: {event_type}")
            outcome = ReconciliationOutcome(ReconciliationStatus.IGNORED)
        else:
            payment = payload.get("payload", {}).get("payment", {}).get("entity", {})
            razorpay_service = RazorpayService(
                settings.razorpay_key_id,
                settings.razorpay_key_secret,
            )
            order_service = OrderService(db)
            outcome = await order_service.reconcile_captured_payment(payment, razorpay_service)

        return build_webhook_response(outcome)

    except Exception as e:
        logger.error(f"Error processing Razorpay webhook: {e}", exc_info=True)
        log_transition(WebhookState.ERROR_RESPONSE, error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})


def build_webhook_response(outcome: ReconciliationOutcome) -> JSONResponse:
    """
    Map a reconciliation outcome to the response Razorpay sees.

    A refunded order still answers 500 so the delivery is not recorded
    as cleanly handled.
    """
    state = log_transition(
        outcome.status.final_state,
        outcome.payment_id,
        reconciliation=outcome.status.value,
    )

    if outcome.status != ReconciliationStatus.PLACEMENT_FAILED:
        return JSONResponse(status_code=state.status_code, content={"received": True})

    if not outcome.refunded:
        refund_error = outcome.refund.error if outcome.refund else None
        logger.error(
            f"Compensating refund failed for {outcome.payment_id}: {refund_error}",
            extra={
                "extra": {
                    "event": "refund_failed",
                    "payment_id": outcome.payment_id,
                    "placement_error": outcome.error,
                    "refund_error": refund_error,
                }
            },
        )
        message = "Order creation failed, refund failed."
    else:
        message = "Order creation failed, refund initiated."

    return JSONResponse(
        status_code=state.status_code,
        content={"error": message, "refunded": outcome.refunded},
    )
