"""
Tests for OrderService reconciliation.
"""

import pytest
from unittest.mock import AsyncMock, patch

from sqlalchemy.exc import DBAPIError, IntegrityError

from app.fsm.states import ReconciliationStatus
from app.models.invoice import Invoice
from app.services.order_service import (
    PLACE_STOCK_ORDER_SQL,
    OrderPlacementError,
    OrderService,
    StockOrder,
    build_stock_order,
    parse_order_items,
)
from app.services.razorpay_service import RazorpayService, RefundResult


SAMPLE_PAYMENT = {
    "id": "pay_123",
    "email": "buyer@example.com",
    "contact": "+919876543210",
    "notes": {
        "user_id": "3f1c2b9e-0000-4000-8000-000000000001",
        "customer_name": "Tirupati Store",
        "customer_address": "12 Market Road",
        "franchise_id": "TV-1",
        "items": '[{"stock_id": 7, "quantity": 2}]',
    },
}


def make_razorpay(refunded: bool = True) -> AsyncMock:
    razorpay = AsyncMock(spec=RazorpayService)
    razorpay.refund_payment.return_value = RefundResult(
        payment_id="pay_123",
        refunded=refunded,
        refund_id="rfnd_1" if refunded else None,
        error=None if refunded else "gateway down",
    )
    return razorpay


class TestParseOrderItems:
    """Tests for notes.items decoding."""

    def test_json_array(self):
        assert parse_order_items('[{"stock_id": 1}]') == [{"stock_id": 1}]

    def test_already_a_list(self):
        assert parse_order_items([{"stock_id": 1}]) == [{"stock_id": 1}]

    def test_invalid_json(self):
        assert parse_order_items("[{not json") == []

    def test_non_array_json(self):
        assert parse_order_items('{"stock_id": 1}') == []

    def test_missing(self):
        assert parse_order_items(None) == []
        assert parse_order_items("") == []


class TestBuildStockOrder:
    """Tests for mapping payment entities to place_stock_order args."""

    def test_notes_mapped(self):
        order = build_stock_order(SAMPLE_PAYMENT)

        assert order.payment_id == "pay_123"
        assert order.created_by == "3f1c2b9e-0000-4000-8000-000000000001"
        assert order.customer_name == "Tirupati Store"
        assert order.customer_address == "12 Market Road"
        assert order.franchise_id == "TV-1"
        assert order.items == [{"stock_id": 7, "quantity": 2}]
        assert order.branch_location == ""

    def test_contact_falls_back_to_payment(self):
        order = build_stock_order(SAMPLE_PAYMENT)

        assert order.customer_email == "buyer@example.com"
        assert order.customer_phone == "+919876543210"

    def test_defaults_for_empty_notes(self):
        """Razorpay serializes empty notes as a list."""
        order = build_stock_order({"id": "pay_999", "notes": []})

        assert order.created_by is None
        assert order.customer_name == "Unknown"
        assert order.customer_email == ""
        assert order.customer_phone == ""
        assert order.customer_address == ""
        assert order.franchise_id == "N/A"
        assert order.items == []

    def test_params_use_procedure_names(self):
        params = StockOrder(payment_id="pay_1").to_params()

        assert params["p_payment_id"] == "pay_1"
        assert params["p_items"] == []
        assert set(params) == {
            "p_created_by",
            "p_customer_name",
            "p_customer_email",
            "p_customer_phone",
            "p_customer_address",
            "p_branch_location",
            "p_franchise_id",
            "p_payment_id",
            "p_items",
        }


@pytest.mark.asyncio
async def test_find_invoice_by_payment_id(db):
    """Test invoice lookup against the invoices table."""
    db.add(Invoice(payment_id="pay_abc", franchise_id="TV-1", status="incoming"))
    await db.commit()

    service = OrderService(db)

    found = await service.find_invoice_by_payment_id("pay_abc")
    assert found is not None
    assert found.franchise_id == "TV-1"
    assert found.created_at is not None

    assert await service.find_invoice_by_payment_id("pay_other") is None


@pytest.mark.asyncio
async def test_reconcile_existing_order_is_noop(db):
    """Re-delivery of a reconciled payment places nothing."""
    db.add(Invoice(payment_id="pay_123", franchise_id="TV-1"))
    await db.commit()

    service = OrderService(db)
    razorpay = make_razorpay()

    with patch.object(service, "place_stock_order", new=AsyncMock()) as place:
        outcome = await service.reconcile_captured_payment(SAMPLE_PAYMENT, razorpay)

    assert outcome.status == ReconciliationStatus.ALREADY_EXISTS
    place.assert_not_awaited()
    razorpay.refund_payment.assert_not_awaited()


@pytest.mark.asyncio
async def test_reconcile_places_missing_order(db):
    service = OrderService(db)
    razorpay = make_razorpay()

    with patch.object(service, "place_stock_order", new=AsyncMock()) as place:
        outcome = await service.reconcile_captured_payment(SAMPLE_PAYMENT, razorpay)

    assert outcome.status == ReconciliationStatus.PLACED
    assert outcome.payment_id == "pay_123"
    place.assert_awaited_once()
    order = place.await_args.args[0]
    assert order.payment_id == "pay_123"
    assert order.franchise_id == "TV-1"
    razorpay.refund_payment.assert_not_awaited()


@pytest.mark.asyncio
async def test_reconcile_malformed_items_places_empty_list(db):
    service = OrderService(db)
    payment = {"id": "pay_bad_items", "notes": {"items": "[oops"}}

    with patch.object(service, "place_stock_order", new=AsyncMock()) as place:
        outcome = await service.reconcile_captured_payment(payment, make_razorpay())

    assert outcome.status == ReconciliationStatus.PLACED
    assert place.await_args.args[0].items == []


@pytest.mark.asyncio
async def test_reconcile_failed_placement_refunds_once(db):
    service = OrderService(db)
    razorpay = make_razorpay()
    failure = OrderPlacementError("Insufficient stock for item 7")

    with patch.object(service, "place_stock_order", new=AsyncMock(side_effect=failure)):
        outcome = await service.reconcile_captured_payment(SAMPLE_PAYMENT, razorpay)

    assert outcome.status == ReconciliationStatus.PLACEMENT_FAILED
    assert outcome.error == "Insufficient stock for item 7"
    assert outcome.refunded is True
    razorpay.refund_payment.assert_awaited_once_with("pay_123")


@pytest.mark.asyncio
async def test_reconcile_failed_refund_is_reported(db):
    service = OrderService(db)
    razorpay = make_razorpay(refunded=False)

    with patch.object(
        service, "place_stock_order", new=AsyncMock(side_effect=OrderPlacementError("rejected"))
    ):
        outcome = await service.reconcile_captured_payment(SAMPLE_PAYMENT, razorpay)

    assert outcome.status == ReconciliationStatus.PLACEMENT_FAILED
    assert outcome.refunded is False
    assert outcome.refund.error == "gateway down"


@pytest.mark.asyncio
async def test_reconcile_concurrent_duplicate_not_refunded(db):
    """Losing the insert race to another delivery is not a failure."""
    service = OrderService(db)
    razorpay = make_razorpay()
    winner = Invoice(payment_id="pay_123")

    with patch.object(
        service, "find_invoice_by_payment_id", new=AsyncMock(side_effect=[None, winner])
    ), patch.object(
        service,
        "place_stock_order",
        new=AsyncMock(side_effect=OrderPlacementError("duplicate key", duplicate=True)),
    ):
        outcome = await service.reconcile_captured_payment(SAMPLE_PAYMENT, razorpay)

    assert outcome.status == ReconciliationStatus.ALREADY_EXISTS
    razorpay.refund_payment.assert_not_awaited()


@pytest.mark.asyncio
async def test_reconcile_requires_payment_id(db):
    service = OrderService(db)

    with pytest.raises(ValueError):
        await service.reconcile_captured_payment({"notes": {}}, make_razorpay())


class TestPlaceStockOrder:
    """Tests for the place_stock_order procedure call."""

    @pytest.mark.asyncio
    async def test_success_commits(self):
        session = AsyncMock()
        order = StockOrder(payment_id="pay_123", franchise_id="TV-1")

        await OrderService(session).place_stock_order(order)

        session.execute.assert_awaited_once_with(PLACE_STOCK_ORDER_SQL, order.to_params())
        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_business_rejection_raises(self):
        session = AsyncMock()
        session.execute.side_effect = DBAPIError(
            "SELECT place_stock_order(...)", {}, Exception("Insufficient stock")
        )

        with pytest.raises(OrderPlacementError) as exc_info:
            await OrderService(session).place_stock_order(StockOrder(payment_id="pay_123"))

        assert str(exc_info.value) == "Insufficient stock"
        assert exc_info.value.duplicate is False
        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unique_violation_flagged_duplicate(self):
        session = AsyncMock()
        session.execute.side_effect = IntegrityError(
            "SELECT place_stock_order(...)", {}, Exception("duplicate key value violates unique constraint")
        )

        with pytest.raises(OrderPlacementError) as exc_info:
            await OrderService(session).place_stock_order(StockOrder(payment_id="pay_123"))

        assert exc_info.value.duplicate is True
        session.rollback.assert_awaited_once()
