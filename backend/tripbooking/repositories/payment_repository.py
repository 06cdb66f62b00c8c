# backend/tripbooking/repositories/payment_repository.py
"""
Payment Repository.

Data access for booking payments and tourists' saved payment methods.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.catalog import Tourist
from ..models.payment import Payment, SavedPaymentMethod
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    """Repository for payment ledger rows."""

    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def get_by_booking_id(self, booking_id: str, *, for_update: bool = False) -> Optional[Payment]:
        query = self.query().filter(Payment.booking_id == booking_id)
        if for_update:
            query = query.with_for_update()
        return query.first()


class SavedPaymentMethodRepository(BaseRepository[SavedPaymentMethod]):
    """Repository for saved card descriptors."""

    def __init__(self, db: Session):
        super().__init__(db, SavedPaymentMethod)

    def list_for_tourist(self, tourist_id: str) -> List[SavedPaymentMethod]:
        """Default method first, then newest first."""
        return (
            self.query()
            .filter(SavedPaymentMethod.tourist_id == tourist_id)
            .order_by(
                SavedPaymentMethod.is_default.desc(),
                SavedPaymentMethod.created_at.desc(),
                SavedPaymentMethod.id.desc(),
            )
            .all()
        )

    def get_for_tourist(self, method_id: str, tourist_id: str) -> Optional[SavedPaymentMethod]:
        return (
            self.query()
            .filter(
                SavedPaymentMethod.id == method_id,
                SavedPaymentMethod.tourist_id == tourist_id,
            )
            .first()
        )

    def has_last4(self, tourist_id: str, last4: str) -> bool:
        return (
            self.query()
            .filter(
                SavedPaymentMethod.tourist_id == tourist_id,
                SavedPaymentMethod.last4 == last4,
            )
            .first()
            is not None
        )

    def most_recent(self, tourist_id: str) -> Optional[SavedPaymentMethod]:
        return (
            self.query()
            .filter(SavedPaymentMethod.tourist_id == tourist_id)
            .order_by(SavedPaymentMethod.created_at.desc(), SavedPaymentMethod.id.desc())
            .first()
        )

    def clear_defaults(self, tourist_id: str) -> int:
        updated = (
            self.query()
            .filter(
                SavedPaymentMethod.tourist_id == tourist_id,
                SavedPaymentMethod.is_default.is_(True),
            )
            .update({SavedPaymentMethod.is_default: False}, synchronize_session="fetch")
        )
        self.db.flush()
        return int(updated or 0)

    def lock_tourist(self, tourist_id: str) -> None:
        """Serialize default-flag changes for one tourist on the tourist row."""
        self.db.query(Tourist.id).filter(Tourist.id == tourist_id).with_for_update().first()
