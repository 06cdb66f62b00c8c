# backend/tripbooking/services/payment_service.py
"""
Payment Service.

Settles a booking through the payment gateway in three phases so no
database lock is held across the network call:

- Phase 1: validate booking and payment, capture the attempt key (short transaction)
- Phase 2: charge the gateway (no transaction)
- Phase 3: record the outcome (short transaction)

A successful charge moves Payment to COMPLETED and Booking to CONFIRMED in
the same transaction. If that transaction cannot commit, the charge is
recorded as a reconciliation case and ReconciliationRequired is raised;
the charge is never retried as a fresh one.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import BookingStatus, GatewayStatus, PaymentStatus
from ..core.exceptions import (
    AlreadyPaidError,
    InvalidTransitionError,
    NotFoundError,
    PaymentError,
    PaymentIndeterminateError,
    ReconciliationRequired,
    ValidationError,
)
from ..database.gateway import PersistenceGateway
from ..events.booking_events import PaymentCompleted
from ..events.publisher import EventPublisher
from ..integrations.payment_gateway import (
    CardDetails,
    ChargeRequest,
    GatewayIndeterminate,
    GatewayResult,
    PaymentGateway,
)
from ..models.payment import Payment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_service import can_access_booking
from .reconciliation_service import ChargeRecord, ReconciliationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentAttempt:
    """Snapshot taken in phase 1 and carried through the gateway call."""

    booking_id: str
    payment_id: str
    tourist_id: str
    driver_id: str
    amount: Decimal
    idempotency_key: str


@dataclass(frozen=True)
class PaymentOutcome:
    payment_id: str
    transaction_id: str
    status: PaymentStatus


class _LedgerMoved(Exception):
    """Booking or payment changed while the gateway call was in flight."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentService(BaseService):
    """Payment orchestration for bookings."""

    def __init__(
        self,
        persistence: PersistenceGateway,
        gateway: PaymentGateway,
        event_publisher: Optional[EventPublisher] = None,
        reconciliation_service: Optional[ReconciliationService] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        super().__init__(persistence)
        self.gateway = gateway
        self.event_publisher = event_publisher or EventPublisher(persistence)
        self.reconciliation_service = reconciliation_service or ReconciliationService(
            persistence, self.event_publisher
        )
        self.clock = clock

    @BaseService.measure_operation("process_payment")
    def process_payment(
        self,
        actor: Actor,
        booking_id: str,
        method: str,
        card: Optional[CardDetails] = None,
        save_payment_method: bool = False,
    ) -> PaymentOutcome:
        """
        Charge the booking's total and confirm it.

        Raises:
            NotFoundError: booking missing or not owned by the caller
            InvalidTransitionError: booking is cancelled or completed
            AlreadyPaidError: payment already completed
            ReconciliationRequired: a previous charge awaits reconciliation,
                or this charge succeeded but could not be recorded
            PaymentError: gateway declined the charge
            PaymentIndeterminateError: gateway outcome unknown; retry later
        """
        if not actor.is_tourist:
            raise NotFoundError("Booking not found")
        method = (method or "").strip()
        if not method:
            raise ValidationError("Payment method is required")
        if save_payment_method and card is None:
            raise ValidationError("Card details are required to save a payment method")

        # ========== PHASE 1: validate (quick transaction) ==========
        attempt = self.transaction(
            lambda session: self._begin_attempt(session, actor, booking_id),
            op_name="payment.begin",
        )

        # ========== PHASE 2: gateway call (NO transaction) ==========
        result = self._charge(attempt, method, card)

        # ========== PHASE 3: record outcome (quick transaction) ==========
        if not result.success:
            self._record_failure(attempt, method, result.error or "payment_failed")
            raise PaymentError(
                f"Payment failed: {result.error or 'payment_failed'}",
                details={"error": result.error, "booking_id": booking_id},
            )

        transaction_id = result.transaction_id or ""
        processed_at = self.clock()
        try:
            self.transaction(
                lambda session: self._record_success(
                    session, attempt, method, transaction_id, processed_at, card, save_payment_method
                ),
                op_name="payment.complete",
            )
        except AlreadyPaidError:
            raise
        except Exception as exc:
            case_id = self.reconciliation_service.open_case(
                ChargeRecord(
                    booking_id=attempt.booking_id,
                    payment_id=attempt.payment_id,
                    transaction_id=transaction_id,
                    amount=attempt.amount,
                    method=method,
                ),
                error=str(exc) or type(exc).__name__,
            )
            raise ReconciliationRequired(
                "Payment was charged but could not be recorded; it will be reconciled",
                details={
                    "booking_id": attempt.booking_id,
                    "transaction_id": transaction_id,
                    "case_id": case_id,
                },
            ) from exc

        self.log_operation(
            "process_payment",
            booking_id=attempt.booking_id,
            payment_id=attempt.payment_id,
            transaction_id=transaction_id,
        )
        self.event_publisher.publish(
            PaymentCompleted(
                booking_id=attempt.booking_id,
                payment_id=attempt.payment_id,
                tourist_id=attempt.tourist_id,
                driver_id=attempt.driver_id,
                amount=attempt.amount,
                transaction_id=transaction_id,
                processed_at=processed_at,
            )
        )
        return PaymentOutcome(
            payment_id=attempt.payment_id,
            transaction_id=transaction_id,
            status=PaymentStatus.COMPLETED,
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _begin_attempt(self, session: Session, actor: Actor, booking_id: str) -> PaymentAttempt:
        booking = RepositoryFactory.create_booking_repository(session).get_with_details(
            booking_id, for_update=True
        )
        if booking is None or booking.tourist_id != actor.role_id:
            raise NotFoundError("Booking not found")

        payment = booking.payment
        if payment is None:
            raise NotFoundError("Payment not found for booking")
        if payment.status == PaymentStatus.COMPLETED.value:
            raise AlreadyPaidError(
                "Booking is already paid", details={"booking_id": booking_id}
            )
        if booking.status != BookingStatus.PENDING.value:
            raise InvalidTransitionError(
                booking.status,
                BookingStatus.CONFIRMED.value,
                message=f"Cannot pay for a booking that is {booking.status}",
            )

        open_case = RepositoryFactory.create_reconciliation_repository(
            session
        ).get_open_for_booking(booking_id)
        if open_case is not None:
            raise ReconciliationRequired(
                "A previous charge for this booking is awaiting reconciliation",
                details={"booking_id": booking_id, "case_id": open_case.id},
            )

        return PaymentAttempt(
            booking_id=booking.id,
            payment_id=payment.id,
            tourist_id=booking.tourist_id,
            driver_id=booking.driver_id,
            amount=Decimal(payment.amount),
            idempotency_key=payment.idempotency_key,
        )

    def _charge(
        self, attempt: PaymentAttempt, method: str, card: Optional[CardDetails]
    ) -> GatewayResult:
        request = ChargeRequest(
            booking_id=attempt.booking_id,
            amount=attempt.amount,
            currency=settings.currency,
            method=method,
            idempotency_key=attempt.idempotency_key,
            card=card,
        )
        try:
            result = self.gateway.charge(request)
        except GatewayIndeterminate as exc:
            self.logger.warning(
                "Gateway outcome unknown, querying by idempotency key",
                extra={"booking_id": attempt.booking_id, "idempotency_key": attempt.idempotency_key},
            )
            result = self.gateway.lookup(attempt.idempotency_key)
            if result is None:
                prometheus_metrics.record_gateway_call(GatewayStatus.INDETERMINATE.value)
                self._mark_indeterminate(attempt)
                raise PaymentIndeterminateError(
                    "Payment outcome is not yet known; retry shortly",
                    details={"booking_id": attempt.booking_id},
                ) from exc

        prometheus_metrics.record_gateway_call(
            GatewayStatus.SUCCEEDED.value if result.success else GatewayStatus.FAILED.value
        )
        return result

    def _mark_indeterminate(self, attempt: PaymentAttempt) -> None:
        """Flag the payment; the attempt counter stays so a retry reuses the same key."""

        def _mark(session: Session) -> None:
            payment = RepositoryFactory.create_payment_repository(session).get_by_id(
                attempt.payment_id, for_update=True
            )
            if payment is not None and payment.status != PaymentStatus.COMPLETED.value:
                payment.gateway_status = GatewayStatus.INDETERMINATE.value

        try:
            self.transaction(_mark, op_name="payment.indeterminate")
        except Exception as exc:
            self.logger.error(
                "Could not flag indeterminate payment %s: %s", attempt.payment_id, exc
            )

    def _record_failure(self, attempt: PaymentAttempt, method: str, error: str) -> None:
        def _fail(session: Session) -> None:
            payment = RepositoryFactory.create_payment_repository(session).get_by_id(
                attempt.payment_id, for_update=True
            )
            if payment is None or payment.status == PaymentStatus.COMPLETED.value:
                return
            payment.status = PaymentStatus.FAILED.value
            payment.method = method
            payment.error_message = error
            payment.transaction_id = None
            payment.gateway_status = GatewayStatus.FAILED.value
            # Definitive outcome: the next attempt gets a fresh idempotency key
            payment.attempt_count = (payment.attempt_count or 0) + 1

        self.transaction(_fail, op_name="payment.fail")
        self.logger.info(
            "Payment declined", extra={"booking_id": attempt.booking_id, "error": error}
        )

    def _record_success(
        self,
        session: Session,
        attempt: PaymentAttempt,
        method: str,
        transaction_id: str,
        processed_at: datetime,
        card: Optional[CardDetails],
        save_payment_method: bool,
    ) -> None:
        booking = RepositoryFactory.create_booking_repository(session).get_with_details(
            attempt.booking_id, for_update=True
        )
        payment: Optional[Payment] = booking.payment if booking is not None else None
        if (
            payment is not None
            and payment.id == attempt.payment_id
            and payment.status == PaymentStatus.COMPLETED.value
            and payment.transaction_id == transaction_id
        ):
            # A concurrent attempt with the same idempotency key already recorded this charge
            raise AlreadyPaidError(
                "Booking is already paid", details={"booking_id": attempt.booking_id}
            )
        if booking is None or booking.status != BookingStatus.PENDING.value:
            raise _LedgerMoved(
                f"Booking {attempt.booking_id} is no longer pending "
                f"({booking.status if booking else 'missing'})"
            )
        if payment is None or payment.id != attempt.payment_id:
            raise _LedgerMoved(f"Payment {attempt.payment_id} no longer matches booking")

        payment.status = PaymentStatus.COMPLETED.value
        payment.method = method
        payment.transaction_id = transaction_id
        payment.processed_at = processed_at
        payment.error_message = None
        payment.gateway_status = GatewayStatus.SUCCEEDED.value
        booking.apply_status(BookingStatus.CONFIRMED)

        if save_payment_method and card is not None:
            methods = RepositoryFactory.create_saved_payment_method_repository(session)
            methods.lock_tourist(booking.tourist_id)
            if not methods.has_last4(booking.tourist_id, card.last4):
                methods.create(
                    tourist_id=booking.tourist_id,
                    card_type=card.card_type,
                    last4=card.last4,
                    expiry_month=card.expiry_month,
                    expiry_year=card.expiry_year,
                    is_default=methods.count(tourist_id=booking.tourist_id) == 0,
                )
        session.flush()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_payment_for_booking(self, actor: Actor, booking_id: str) -> Payment:
        """Payment detail with the same visibility as the booking itself."""

        def _load(session: Session) -> Optional[Payment]:
            booking = RepositoryFactory.create_booking_repository(session).get_with_details(booking_id)
            if booking is None or not can_access_booking(actor, booking):
                return None
            return booking.payment

        payment = self.transaction(_load, op_name="payment.get")
        if payment is None:
            raise NotFoundError("Payment not found")
        return payment
