"""
Payment reconciliation cases.

A case is opened when the gateway confirmed a charge but the local ledger
could not record it. While a case is open, the booking accepts no further
payment attempts.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

import ulid
from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.enums import ReconciliationStatus
from ..database import Base


class PaymentReconciliation(Base):
    __tablename__ = "payment_reconciliations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"), nullable=False, index=True)
    payment_id: Mapped[str] = mapped_column(String(26), ForeignKey("payments.id"), nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(50), nullable=False)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ReconciliationStatus.OPEN.value)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(26), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<PaymentReconciliation(booking_id={self.booking_id}, status={self.status})>"
