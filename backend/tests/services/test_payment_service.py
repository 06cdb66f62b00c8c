"""PaymentService: three-phase settlement, idempotency keys, and gateway outcomes."""

from decimal import Decimal

import pytest

from tripbooking.core.enums import BookingStatus, GatewayStatus, PaymentStatus
from tripbooking.core.exceptions import (
    AlreadyPaidError,
    InvalidTransitionError,
    NotFoundError,
    PaymentError,
    PaymentIndeterminateError,
    ValidationError,
)
from tripbooking.integrations.payment_gateway import CardDetails, GatewayResult
from tripbooking.models import BackgroundJob, Booking, Payment, SavedPaymentMethod

VISA = CardDetails(card_type="Visa", last4="4242", expiry_month=12, expiry_year=2031, token="pm_card_visa")
AMEX = CardDetails(card_type="Amex", last4="0005", expiry_month=6, expiry_year=2032, token="pm_card_amex")


def _state(db, booking_id):
    db.expire_all()
    booking = db.get(Booking, booking_id)
    payment = db.query(Payment).filter(Payment.booking_id == booking_id).one()
    return booking, payment


def _assert_confirmed_iff_completed(booking, payment):
    assert (booking.status == BookingStatus.CONFIRMED.value) == (
        payment.status == PaymentStatus.COMPLETED.value
    )


class TestSuccessfulPayment:
    def test_scenario_b_success_confirms_booking(self, db, create_booking, payment_service, fake_gateway, tourist):
        booking_id = create_booking()
        fake_gateway.succeed_next("tx_1")

        outcome = payment_service.process_payment(tourist, booking_id, "Card", VISA)

        assert outcome.transaction_id == "tx_1"
        assert outcome.status == PaymentStatus.COMPLETED
        booking, payment = _state(db, booking_id)
        assert booking.status == BookingStatus.CONFIRMED.value
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.transaction_id == "tx_1"
        assert payment.method == "Card"
        assert payment.gateway_status == GatewayStatus.SUCCEEDED.value
        assert payment.processed_at is not None

    def test_charges_booking_total_with_first_attempt_key(self, create_booking, payment_service, fake_gateway, tourist):
        booking_id = create_booking(total_amount=Decimal("212.50"))
        payment_service.process_payment(tourist, booking_id, "Card", VISA)

        (request,) = fake_gateway.requests
        assert request.amount == Decimal("212.50")
        assert request.idempotency_key == f"booking:{booking_id}:attempt:0"
        assert request.card == VISA

    def test_second_payment_is_rejected_without_charging(self, create_booking, payment_service, fake_gateway, tourist):
        booking_id = create_booking()
        payment_service.process_payment(tourist, booking_id, "Card", VISA)

        for _ in range(2):
            with pytest.raises(AlreadyPaidError):
                payment_service.process_payment(tourist, booking_id, "Card", VISA)

        assert len(fake_gateway.requests) == 1
        assert fake_gateway.charge_count == 1

    def test_publishes_payment_completed(self, db, create_booking, payment_service, tourist):
        booking_id = create_booking()
        payment_service.process_payment(tourist, booking_id, "Card", VISA)

        db.expire_all()
        job = db.query(BackgroundJob).filter(BackgroundJob.type == "event:PaymentCompleted").one()
        assert job.payload["booking_id"] == booking_id
        assert job.payload["amount"] == "150.00"


class TestDeclinedPayment:
    def test_scenario_c_decline_leaves_booking_pending(self, db, create_booking, payment_service, fake_gateway, tourist):
        booking_id = create_booking()
        fake_gateway.decline_next("card_declined")

        with pytest.raises(PaymentError) as exc_info:
            payment_service.process_payment(tourist, booking_id, "Card", VISA)

        assert exc_info.value.details["error"] == "card_declined"
        booking, payment = _state(db, booking_id)
        assert booking.status == BookingStatus.PENDING.value
        assert payment.status == PaymentStatus.FAILED.value
        assert payment.error_message == "card_declined"
        assert payment.transaction_id is None
        assert payment.attempt_count == 1
        _assert_confirmed_iff_completed(booking, payment)

    def test_retry_after_decline_uses_a_fresh_key(self, db, create_booking, payment_service, fake_gateway, tourist):
        booking_id = create_booking()
        fake_gateway.decline_next()
        with pytest.raises(PaymentError):
            payment_service.process_payment(tourist, booking_id, "Card", VISA)

        fake_gateway.succeed_next("tx_retry")
        payment_service.process_payment(tourist, booking_id, "Card", VISA)

        keys = [r.idempotency_key for r in fake_gateway.requests]
        assert keys == [f"booking:{booking_id}:attempt:0", f"booking:{booking_id}:attempt:1"]
        booking, payment = _state(db, booking_id)
        assert payment.status == PaymentStatus.COMPLETED.value
        assert payment.error_message is None
        _assert_confirmed_iff_completed(booking, payment)

    def test_decline_test_card(self, create_booking, payment_service, tourist):
        booking_id = create_booking()
        declined = CardDetails(card_type="Visa", last4="0002", expiry_month=1, expiry_year=2031)
        with pytest.raises(PaymentError):
            payment_service.process_payment(tourist, booking_id, "Card", declined)


class TestIndeterminateOutcome:
    def test_timeout_settled_at_gateway_is_recovered_by_lookup(
        self, db, create_booking, payment_service, fake_gateway, tourist
    ):
        booking_id = create_booking()
        fake_gateway.timeout_next(settled=GatewayResult.succeeded("tx_late"))

        outcome = payment_service.process_payment(tourist, booking_id, "Card", VISA)

        assert outcome.transaction_id == "tx_late"
        assert fake_gateway.lookups == [f"booking:{booking_id}:attempt:0"]
        booking, payment = _state(db, booking_id)
        assert booking.status == BookingStatus.CONFIRMED.value
        assert payment.transaction_id == "tx_late"

    def test_timeout_settled_as_decline(self, db, create_booking, payment_service, fake_gateway, tourist):
        booking_id = create_booking()
        fake_gateway.timeout_next(settled=GatewayResult.failed("insufficient_funds"))

        with pytest.raises(PaymentError):
            payment_service.process_payment(tourist, booking_id, "Card", VISA)
        _, payment = _state(db, booking_id)
        assert payment.status == PaymentStatus.FAILED.value
        assert payment.error_message == "insufficient_funds"

    def test_unknown_outcome_keeps_key_for_retry(self, db, create_booking, payment_service, fake_gateway, tourist):
        booking_id = create_booking()
        fake_gateway.timeout_next()

        with pytest.raises(PaymentIndeterminateError):
            payment_service.process_payment(tourist, booking_id, "Card", VISA)

        booking, payment = _state(db, booking_id)
        assert booking.status == BookingStatus.PENDING.value
        assert payment.status == PaymentStatus.PENDING.value
        assert payment.gateway_status == GatewayStatus.INDETERMINATE.value
        assert payment.attempt_count == 0

        payment_service.process_payment(tourist, booking_id, "Card", VISA)
        first, second = fake_gateway.requests
        assert first.idempotency_key == second.idempotency_key
        assert fake_gateway.charge_count == 1
        booking, payment = _state(db, booking_id)
        _assert_confirmed_iff_completed(booking, payment)
        assert payment.status == PaymentStatus.COMPLETED.value


class TestPaymentPreconditions:
    def test_cancelled_booking_cannot_be_paid(self, create_booking, booking_service, payment_service, fake_gateway, tourist):
        booking_id = create_booking()
        booking_service.cancel_booking(tourist, booking_id)

        with pytest.raises(InvalidTransitionError):
            payment_service.process_payment(tourist, booking_id, "Card", VISA)
        assert fake_gateway.requests == []

    def test_other_tourist_sees_not_found(self, create_booking, payment_service, fake_gateway, other_tourist):
        booking_id = create_booking()
        with pytest.raises(NotFoundError):
            payment_service.process_payment(other_tourist, booking_id, "Card", VISA)
        assert fake_gateway.requests == []

    def test_drivers_cannot_pay(self, create_booking, payment_service, driver):
        booking_id = create_booking()
        with pytest.raises(NotFoundError):
            payment_service.process_payment(driver, booking_id, "Card", VISA)

    def test_unknown_booking(self, payment_service, tourist):
        with pytest.raises(NotFoundError):
            payment_service.process_payment(tourist, "missing", "Card", VISA)

    def test_method_required(self, create_booking, payment_service, tourist):
        booking_id = create_booking()
        with pytest.raises(ValidationError):
            payment_service.process_payment(tourist, booking_id, "   ", VISA)

    def test_saving_requires_card(self, create_booking, payment_service, tourist):
        booking_id = create_booking()
        with pytest.raises(ValidationError):
            payment_service.process_payment(tourist, booking_id, "Card", None, save_payment_method=True)


class TestSavePaymentMethod:
    def _methods(self, db, seed):
        db.expire_all()
        return db.query(SavedPaymentMethod).filter(SavedPaymentMethod.tourist_id == seed.tourist.id).all()

    def test_first_saved_card_becomes_default(self, db, seed, create_booking, payment_service, tourist):
        booking_id = create_booking()
        payment_service.process_payment(tourist, booking_id, "Card", VISA, save_payment_method=True)

        (method,) = self._methods(db, seed)
        assert method.last4 == "4242"
        assert method.card_type == "Visa"
        assert method.is_default is True

    def test_same_card_not_saved_twice(self, db, seed, create_booking, payment_service, tourist):
        first = create_booking()
        second = create_booking(vehicle_id=seed.van.id)
        payment_service.process_payment(tourist, first, "Card", VISA, save_payment_method=True)
        payment_service.process_payment(tourist, second, "Card", VISA, save_payment_method=True)
        assert len(self._methods(db, seed)) == 1

    def test_additional_card_is_not_default(self, db, seed, create_booking, payment_service, tourist):
        first = create_booking()
        second = create_booking(vehicle_id=seed.van.id)
        payment_service.process_payment(tourist, first, "Card", VISA, save_payment_method=True)
        payment_service.process_payment(tourist, second, "Card", AMEX, save_payment_method=True)

        defaults = {m.last4: m.is_default for m in self._methods(db, seed)}
        assert defaults == {"4242": True, "0005": False}

    def test_declined_charge_saves_nothing(self, db, seed, create_booking, payment_service, fake_gateway, tourist):
        booking_id = create_booking()
        fake_gateway.decline_next()
        with pytest.raises(PaymentError):
            payment_service.process_payment(tourist, booking_id, "Card", VISA, save_payment_method=True)
        assert self._methods(db, seed) == []


class TestPaymentReads:
    def test_visibility_follows_booking(self, create_booking, payment_service, tourist, driver, admin, other_tourist):
        booking_id = create_booking()
        for actor in (tourist, driver, admin):
            assert payment_service.get_payment_for_booking(actor, booking_id).booking_id == booking_id
        with pytest.raises(NotFoundError):
            payment_service.get_payment_for_booking(other_tourist, booking_id)
