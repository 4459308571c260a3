"""
Order Service - recovers stock orders for captured Razorpay payments.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import bindparam, select, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.fsm.machine import log_transition
from app.fsm.states import ReconciliationStatus, WebhookState
from app.models.invoice import Invoice
from app.services.razorpay_service import RazorpayService, RefundResult

logger = logging.getLogger(__name__)


PLACE_STOCK_ORDER_SQL = text(
    """
    SELECT place_stock_order(
        p_created_by => :p_created_by,
        p_customer_name => :p_customer_name,
        p_customer_email => :p_customer_email,
        p_customer_phone => :p_customer_phone,
        p_customer_address => :p_customer_address,
        p_branch_location => :p_branch_location,
        p_franchise_id => :p_franchise_id,
        p_payment_id => :p_payment_id,
        p_items => :p_items
    )
    """
).bindparams(bindparam("p_items", type_=JSONB))


class OrderPlacementError(Exception):
    """The place_stock_order procedure rejected the order."""

    def __init__(self, message: str, duplicate: bool = False):
        super().__init__(message)
        self.duplicate = duplicate


@dataclass
class StockOrder:
    """Arguments for the place_stock_order procedure."""

    payment_id: str
    created_by: Optional[str] = None
    customer_name: str = "Unknown"
    customer_email: str = ""
    customer_phone: str = ""
    customer_address: str = ""
    branch_location: str = ""
    franchise_id: str = "N/A"
    items: List[Any] = field(default_factory=list)

    def to_params(self) -> Dict[str, Any]:
        return {
            "p_created_by": self.created_by,
            "p_customer_name": self.customer_name,
            "p_customer_email": self.customer_email,
            "p_customer_phone": self.customer_phone,
            "p_customer_address": self.customer_address,
            "p_branch_location": self.branch_location,
            "p_franchise_id": self.franchise_id,
            "p_payment_id": self.payment_id,
            "p_items": self.items,
        }


@dataclass
class ReconciliationOutcome:
    """Result of reconciling one payment.captured notification."""

    status: ReconciliationStatus
    payment_id: Optional[str] = None
    error: Optional[str] = None
    refund: Optional[RefundResult] = None

    @property
    def refunded(self) -> bool:
        return bool(self.refund and self.refund.refunded)


def parse_order_items(raw: Any) -> List[Any]:
    """Decode notes.items; anything unusable becomes an empty list."""
    if isinstance(raw, list):
        return raw
    if not raw or not isinstance(raw, str):
        return []
    try:
        items = json.loads(raw)
    except ValueError:
        logger.warning("Malformed items in payment notes, using empty list")
        return []
    return items if isinstance(items, list) else []


def get_payment_notes(payment: Dict[str, Any]) -> Dict[str, Any]:
    """Razorpay sends empty notes as [] rather than {}."""
    notes = payment.get("notes")
    return notes if isinstance(notes, dict) else {}


def build_stock_order(payment: Dict[str, Any]) -> StockOrder:
    """Map a Razorpay payment entity to place_stock_order arguments."""
    notes = get_payment_notes(payment)

    return StockOrder(
        payment_id=payment.get("id"),
        created_by=notes.get("user_id"),
        customer_name=notes.get("customer_name") or "Unknown",
        customer_email=notes.get("customer_email") or payment.get("email") or "",
        customer_phone=notes.get("customer_phone") or payment.get("contact") or "",
        customer_address=notes.get("customer_address") or "",
        franchise_id=notes.get("franchise_id") or "N/A",
        items=parse_order_items(notes.get("items")),
    )


class OrderService:
    """Service for reconciling captured payments with stock orders."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_invoice_by_payment_id(self, payment_id: str) -> Optional[Invoice]:
        """Get the invoice already recorded for a payment, if any."""
        result = await self.db.execute(
            select(Invoice).where(Invoice.payment_id == payment_id)
        )
        return result.scalar_one_or_none()

    async def place_stock_order(self, order: StockOrder) -> None:
        """
        Run place_stock_order in the backend.

        Stock checks and invoice/item inserts happen inside the procedure;
        a rejection surfaces here as a database error.
        """
        try:
            await self.db.execute(PLACE_STOCK_ORDER_SQL, order.to_params())
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise OrderPlacementError(_db_error_message(e), duplicate=True) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise OrderPlacementError(_db_error_message(e)) from e

    async def reconcile_captured_payment(
        self,
        payment: Dict[str, Any],
        razorpay_service: RazorpayService,
    ) -> ReconciliationOutcome:
        """
        Make sure a captured payment has an order.

        1. Existing invoice -> nothing to do
        2. Missing -> place_stock_order
        3. Placement rejected -> refund the payment
        """
        payment_id = payment.get("id")
        if not payment_id:
            raise ValueError("payment.captured event has no payment id")

        existing = await self.find_invoice_by_payment_id(payment_id)
        if existing:
            logger.info(f"Order for {payment_id} already exists")
            return ReconciliationOutcome(ReconciliationStatus.ALREADY_EXISTS, payment_id)

        logger.warning(f"Order for {payment_id} missing, attempting recovery")
        order = build_stock_order(payment)
        log_transition(WebhookState.PLACEMENT_ATTEMPTED, payment_id)

        try:
            await self.place_stock_order(order)
        except OrderPlacementError as e:
            # A concurrent delivery may have placed it between check and insert
            if e.duplicate and await self.find_invoice_by_payment_id(payment_id):
                logger.info(f"Order for {payment_id} placed by a concurrent delivery")
                return ReconciliationOutcome(ReconciliationStatus.ALREADY_EXISTS, payment_id)

            logger.error(f"Order recovery failed for {payment_id}: {e}")
            log_transition(WebhookState.FAILED, payment_id, placement_error=str(e))
            logger.info(f"Initiating auto-refund for {payment_id}")
            refund = await razorpay_service.refund_payment(payment_id)
            log_transition(WebhookState.REFUND_ATTEMPTED, payment_id, refunded=refund.refunded)
            return ReconciliationOutcome(
                ReconciliationStatus.PLACEMENT_FAILED,
                payment_id,
                error=str(e),
                refund=refund,
            )

        logger.info(f"Order for {payment_id} recovered")
        log_transition(WebhookState.PLACED, payment_id)
        return ReconciliationOutcome(ReconciliationStatus.PLACED, payment_id)


def _db_error_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)
