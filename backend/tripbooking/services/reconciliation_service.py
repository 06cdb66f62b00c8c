# backend/tripbooking/services/reconciliation_service.py
"""
Reconciliation Service.

Manual queue for charges the gateway confirmed but the local ledger could
not record. Cases are opened by the payment flow and closed by an admin;
there is no automatic refund.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import BookingStatus, GatewayStatus, PaymentStatus, ReconciliationStatus
from ..core.exceptions import ForbiddenError, NotFoundError, ValidationError
from ..database.gateway import PersistenceGateway
from ..events.booking_events import PaymentCompleted
from ..events.publisher import EventPublisher
from ..models.reconciliation import PaymentReconciliation
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChargeRecord:
    """A gateway charge the ledger has not yet recorded."""

    booking_id: str
    payment_id: str
    transaction_id: str
    amount: Decimal
    method: str


class ReconciliationService(BaseService):
    def __init__(
        self,
        persistence: PersistenceGateway,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(persistence)
        self.event_publisher = event_publisher or EventPublisher(persistence)

    def open_case(self, charge: ChargeRecord, error: str) -> Optional[str]:
        """
        Record a reconciliation case in its own unit of work.

        Always logs at critical level and bumps the metric, even when the
        case row itself cannot be written; returns the case id when it was.
        """
        prometheus_metrics.inc_reconciliation_required()
        context = {
            "event": "payment_reconciliation_required",
            "booking_id": charge.booking_id,
            "payment_id": charge.payment_id,
            "transaction_id": charge.transaction_id,
            "amount": str(charge.amount),
            "error": error,
        }
        try:
            case_id = self.persistence.with_transaction(
                lambda session: RepositoryFactory.create_reconciliation_repository(session)
                .create(
                    booking_id=charge.booking_id,
                    payment_id=charge.payment_id,
                    transaction_id=charge.transaction_id,
                    amount=charge.amount,
                    method=charge.method,
                    error=error[:2000],
                    status=ReconciliationStatus.OPEN.value,
                )
                .id,
                op_name="reconciliation.open",
            )
        except Exception as exc:
            self.logger.critical(
                "Charge succeeded but ledger write failed; reconciliation case NOT recorded",
                extra={**context, "case_error": str(exc)},
            )
            return None

        self.logger.critical(
            "Charge succeeded but ledger write failed; reconciliation case opened",
            extra={**context, "case_id": case_id},
        )
        return case_id

    def list_cases(self, actor: Actor, status: Optional[ReconciliationStatus] = None) -> List[PaymentReconciliation]:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        return self.transaction(
            lambda session: RepositoryFactory.create_reconciliation_repository(session).list_by_status(
                status.value if status else None
            ),
            op_name="reconciliation.list",
        )

    @BaseService.measure_operation("resolve_reconciliation")
    def resolve(self, actor: Actor, case_id: str) -> PaymentReconciliation:
        """
        Apply the recorded charge to the ledger and close the case.

        A pending booking becomes CONFIRMED with its payment COMPLETED. A
        booking cancelled in the meantime keeps its status; its payment still
        records the charge so the money is accounted for.
        """
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")

        def _resolve(session: Session) -> tuple:
            cases = RepositoryFactory.create_reconciliation_repository(session)
            case = cases.get_by_id(case_id, for_update=True)
            if case is None:
                raise NotFoundError("Reconciliation case not found")
            if case.status != ReconciliationStatus.OPEN.value:
                raise ValidationError("Reconciliation case is already resolved")

            booking = RepositoryFactory.create_booking_repository(session).get_with_details(
                case.booking_id, for_update=True
            )
            payment = RepositoryFactory.create_payment_repository(session).get_by_booking_id(
                case.booking_id, for_update=True
            )
            if booking is None or payment is None:
                raise NotFoundError("Booking or payment for this case no longer exists")

            now = datetime.now(timezone.utc)
            payment.status = PaymentStatus.COMPLETED.value
            payment.transaction_id = case.transaction_id
            payment.method = case.method
            payment.processed_at = now
            payment.gateway_status = GatewayStatus.SUCCEEDED.value
            payment.error_message = None

            confirmed = booking.status == BookingStatus.PENDING.value
            if confirmed:
                booking.apply_status(BookingStatus.CONFIRMED)

            case.status = ReconciliationStatus.RESOLVED.value
            case.resolved_by = actor.user_id
            case.resolved_at = now
            session.flush()
            return case, confirmed, booking.tourist_id, booking.driver_id

        case, confirmed, tourist_id, driver_id = self.transaction(
            _resolve, op_name="reconciliation.resolve"
        )
        self.log_operation(
            "resolve_reconciliation",
            case_id=case_id,
            booking_id=case.booking_id,
            booking_confirmed=confirmed,
        )
        if confirmed:
            self.event_publisher.publish(
                PaymentCompleted(
                    booking_id=case.booking_id,
                    payment_id=case.payment_id,
                    tourist_id=tourist_id,
                    driver_id=driver_id,
                    amount=case.amount,
                    transaction_id=case.transaction_id,
                    processed_at=case.resolved_at,
                )
            )
        return case
