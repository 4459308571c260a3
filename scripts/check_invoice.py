"""Check whether an invoice exists for a Razorpay payment id."""
import asyncio
import sys

from app.database import get_db_context
from app.services.order_service import OrderService


async def check(payment_id: str) -> None:
    async with get_db_context() as db:
        invoice = await OrderService(db).find_invoice_by_payment_id(payment_id)
        if invoice:
            print(f"FOUND: {invoice!r} status={invoice.status} franchise={invoice.franchise_id}")
        else:
            print(f"MISSING: no invoice for {payment_id}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/check_invoice.py <payment_id>")
        sys.exit(1)
    asyncio.run(check(sys.argv[1]))
