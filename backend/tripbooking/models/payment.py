"""
Payment models.

``Payment`` is the local ledger entry settling one booking; ``SavedPaymentMethod``
keeps the non-sensitive card descriptor a tourist chose to remember.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import ulid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.enums import PaymentStatus
from ..database import Base

if TYPE_CHECKING:
    from .booking import Booking


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Payment(Base):
    """Settlement record for a booking's total amount."""

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    method: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Gateway bookkeeping; attempt_count only advances after a definitive outcome
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gateway_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="payment")

    __table_args__ = (
        CheckConstraint("status IN ('PENDING', 'COMPLETED', 'FAILED')", name="ck_payments_status"),
        CheckConstraint("amount >= 0", name="ck_payments_amount_non_negative"),
    )

    @property
    def idempotency_key(self) -> str:
        return f"booking:{self.booking_id}:attempt:{self.attempt_count}"

    def __repr__(self) -> str:
        return f"<Payment(booking_id={self.booking_id}, amount={self.amount}, status={self.status})>"


class SavedPaymentMethod(Base):
    """Card descriptor a tourist saved for later use. Never holds the full card number."""

    __tablename__ = "saved_payment_methods"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tourist_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("tourists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    card_type: Mapped[str] = mapped_column(String(30), nullable=False)
    last4: Mapped[str] = mapped_column(String(4), nullable=False)
    expiry_month: Mapped[int] = mapped_column(Integer, nullable=False)
    expiry_year: Mapped[int] = mapped_column(Integer, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Python-side default keeps sub-second ordering for "most recent" promotion
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index(
            "uq_saved_payment_methods_tourist_default",
            "tourist_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default"),
        ),
    )

    def __repr__(self) -> str:
        return f"<SavedPaymentMethod(tourist_id={self.tourist_id}, last4={self.last4}, default={self.is_default})>"
