"""Repository for payment reconciliation cases."""

from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import ReconciliationStatus
from ..models.reconciliation import PaymentReconciliation
from .base_repository import BaseRepository


class ReconciliationRepository(BaseRepository[PaymentReconciliation]):
    def __init__(self, db: Session):
        super().__init__(db, PaymentReconciliation)

    def get_open_for_booking(self, booking_id: str) -> Optional[PaymentReconciliation]:
        return (
            self.query()
            .filter(
                PaymentReconciliation.booking_id == booking_id,
                PaymentReconciliation.status == ReconciliationStatus.OPEN.value,
            )
            .first()
        )

    def list_by_status(self, status: Optional[str] = None) -> List[PaymentReconciliation]:
        query = self.query()
        if status:
            query = query.filter(PaymentReconciliation.status == status)
        return query.order_by(PaymentReconciliation.created_at.asc()).all()
