"""
Razorpay Service - webhook signature verification and refunds.
"""

import asyncio
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional, Union

import razorpay
from razorpay.errors import BadRequestError, GatewayError, ServerError

logger = logging.getLogger(__name__)

REFUND_REASON = "Stock Unavailable / Order Failed"


def verify_razorpay_signature(
    body: Union[str, bytes],
    signature: Optional[str],
    secret: Optional[str],
) -> bool:
    """
    Verify Razorpay webhook signature using HMAC SHA256.

    The body must be the raw payload exactly as received; re-serialized
    JSON will not match.
    """
    if not signature:
        logger.error("Missing X-Razorpay-Signature header")
        return False

    if not secret:
        logger.error("Razorpay webhook secret not configured")
        return False

    if isinstance(body, str):
        body = body.encode("utf-8")

    expected_signature = hmac.new(
        secret.encode("utf-8"),
        body,
        hashlib.sha256,
    ).hexdigest()

    # Header values arrive latin-1 decoded; compare bytes so forged
    # non-ASCII signatures fail instead of raising TypeError
    return hmac.compare_digest(
        expected_signature.encode("ascii"),
        signature.encode("utf-8", "surrogateescape"),
    )


@dataclass
class RefundResult:
    """Outcome of a single refund attempt."""

    payment_id: str
    refunded: bool
    refund_id: Optional[str] = None
    error: Optional[str] = None


class RazorpayService:
    """Service for Razorpay API calls made by the webhook."""

    def __init__(self, key_id: str, key_secret: str, client: Optional[razorpay.Client] = None):
        self.key_id = key_id
        self.key_secret = key_secret
        self._client = client

    @property
    def client(self) -> razorpay.Client:
        if self._client is None:
            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    async def refund_payment(self, payment_id: str) -> RefundResult:
        """
        Refund a captured payment in full.

        Single attempt. Failures are logged and reported in the result,
        never raised, so the webhook can still answer Razorpay.
        """
        if not payment_id:
            raise ValueError("payment_id is required for a refund")

        if not self.is_configured:
            logger.error("Missing Razorpay keys for refund")
            return RefundResult(payment_id=payment_id, refunded=False, error="Razorpay keys not configured")

        try:
            # The SDK is blocking (requests); keep it off the event loop
            refund = await asyncio.to_thread(
                self.client.payment.refund,
                payment_id,
                {"notes": {"reason": REFUND_REASON}},
            )
        except (BadRequestError, GatewayError, ServerError) as e:
            logger.error(f"Refund failed for {payment_id}: {e}")
            return RefundResult(payment_id=payment_id, refunded=False, error=str(e))
        except Exception as e:
            logger.error(f"Refund network error for {payment_id}: {e}", exc_info=True)
            return RefundResult(payment_id=payment_id, refunded=False, error=str(e))

        refund_id = refund.get("id") if isinstance(refund, dict) else None
        logger.info(f"Refund successful for {payment_id}: {refund_id}")
        return RefundResult(payment_id=payment_id, refunded=True, refund_id=refund_id)
