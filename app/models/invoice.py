"""Invoice model - stock orders stored by the Supabase backend."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, DateTime, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Invoice(Base):
    """
    Stock order invoice.

    The table is created and written by the backend (place_stock_order);
    only the columns the webhook reads are mapped here.
    payment_id is unique so one Razorpay payment yields at most one order.
    """

    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Razorpay payment ID (null for invoices raised without online payment)
    payment_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )

    franchise_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )

    customer_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    # incoming / packed / dispatched ...
    status: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    total_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Invoice {self.id} payment={self.payment_id}>"
