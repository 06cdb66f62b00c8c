# backend/tripbooking/services/booking_service.py
"""
Booking Service.

Owns the booking state machine:

    PENDING   -> CONFIRMED | CANCELLED
    CONFIRMED -> COMPLETED | CANCELLED
    COMPLETED, CANCELLED are terminal

Creation writes the booking and its pending payment in one unit of work.
Every committed transition publishes a notification event afterwards;
publishing never fails the transition.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
import logging
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import (
    DEFAULT_PAYMENT_METHOD,
    DEFAULT_STATUS_CANCELLATION_REASON,
    FREE_CANCELLATION_FEE,
    MONEY_QUANTUM,
)
from ..core.enums import BOOKING_TRANSITIONS, BookingStatus, PaymentStatus, RoleName
from ..core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..database.gateway import PersistenceGateway
from ..events.booking_events import BookingCancelled, BookingCreated, BookingStatusChanged
from ..events.publisher import EventPublisher
from ..models.booking import Booking
from ..principal import Actor
from ..repositories.factory import RepositoryFactory
from .availability_service import AvailabilityService
from .base import BaseService
from .cancellation_policy import CancellationTerms, cancellation_terms

logger = logging.getLogger(__name__)

_VEHICLE_DATE_CONFLICT_MARKERS = (
    "uq_bookings_vehicle_date_active",
    "bookings.vehicle_id, bookings.trip_date",
)


@dataclass
class BookingRequest:
    """Fields a tourist supplies to create a booking."""

    vehicle_id: Optional[str]
    trip_date: Optional[date]
    trip_time: Optional[time]
    pickup_location: Optional[str]
    total_amount: Optional[Decimal]
    destination_id: Optional[str] = None
    dropoff_location: Optional[str] = None
    itinerary: Optional[List[Any]] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class CreatedBooking:
    booking_id: str
    payment_id: str


@dataclass(frozen=True)
class TransitionResult:
    booking_id: str
    status: BookingStatus
    previous_status: BookingStatus


@dataclass(frozen=True)
class CancellationResult:
    booking_id: str
    status: BookingStatus
    previous_status: BookingStatus
    fee: Decimal
    reason: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def can_access_booking(actor: Actor, booking: Booking) -> bool:
    """Owner tourist, the driver of the booked vehicle, or an admin."""
    if actor.is_admin:
        return True
    if actor.is_tourist:
        return booking.tourist_id == actor.role_id
    if actor.is_driver:
        return booking.driver_id == actor.role_id
    return False


class BookingService(BaseService):
    """Service layer for the booking lifecycle."""

    def __init__(
        self,
        persistence: PersistenceGateway,
        event_publisher: Optional[EventPublisher] = None,
        availability_service: Optional[AvailabilityService] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        super().__init__(persistence)
        self.event_publisher = event_publisher or EventPublisher(persistence)
        self.availability_service = availability_service or AvailabilityService(persistence)
        self.clock = clock

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_booking")
    def create_booking(self, actor: Actor, request: BookingRequest) -> CreatedBooking:
        """
        Create a PENDING booking and its PENDING payment atomically.

        Raises:
            ForbiddenError: caller is not a tourist
            ValidationError: required fields missing or amount negative
            NotFoundError: vehicle does not exist
            ConflictError: vehicle already held on that date
        """
        if not actor.is_tourist:
            raise ForbiddenError("Only tourists can create bookings")
        self._validate_request(request)
        amount = Decimal(request.total_amount).quantize(MONEY_QUANTUM)

        def _create(session: Session) -> tuple:
            catalog = RepositoryFactory.create_catalog_repository(session)
            profile = catalog.get_vehicle_profile(request.vehicle_id)
            if profile is None:
                raise NotFoundError("Vehicle not found")

            # Advisory; the partial unique index settles concurrent inserts
            if not self.availability_service.is_available(
                request.vehicle_id, request.trip_date, session
            ):
                raise ConflictError(
                    details={"vehicle_id": request.vehicle_id, "trip_date": str(request.trip_date)}
                )

            booking = Booking(
                tourist_id=actor.role_id,
                vehicle_id=request.vehicle_id,
                destination_id=request.destination_id,
                trip_date=request.trip_date,
                trip_time=request.trip_time,
                pickup_location=request.pickup_location.strip(),
                dropoff_location=request.dropoff_location,
                notes=request.notes,
                total_amount=amount,
                status=BookingStatus.PENDING.value,
            )
            booking.set_itinerary(request.itinerary)
            session.add(booking)
            session.flush()

            payment = RepositoryFactory.create_payment_repository(session).create(
                booking_id=booking.id,
                method=DEFAULT_PAYMENT_METHOD,
                amount=amount,
                status=PaymentStatus.PENDING.value,
            )
            return booking.id, payment.id, profile.driver_id

        try:
            booking_id, payment_id, driver_id = self.transaction(_create, op_name="booking.create")
        except IntegrityError as exc:
            if not self._is_vehicle_date_conflict(exc):
                raise ValidationError("Booking references unknown records") from exc
            self.logger.info(
                "Concurrent booking lost the vehicle/date race",
                extra={"vehicle_id": request.vehicle_id, "trip_date": str(request.trip_date)},
            )
            raise ConflictError(
                details={"vehicle_id": request.vehicle_id, "trip_date": str(request.trip_date)}
            ) from exc

        self.log_operation("create_booking", booking_id=booking_id, vehicle_id=request.vehicle_id)
        self.event_publisher.publish(
            BookingCreated(
                booking_id=booking_id,
                tourist_id=actor.role_id,
                driver_id=driver_id,
                vehicle_id=request.vehicle_id,
                trip_date=request.trip_date,
                total_amount=amount,
                created_at=self.clock(),
            )
        )
        return CreatedBooking(booking_id=booking_id, payment_id=payment_id)

    @staticmethod
    def _validate_request(request: BookingRequest) -> None:
        missing = [
            name
            for name in ("vehicle_id", "trip_date", "trip_time", "pickup_location", "total_amount")
            if getattr(request, name) in (None, "")
        ]
        if request.pickup_location is not None and not str(request.pickup_location).strip():
            missing.append("pickup_location")
        if missing:
            raise ValidationError(
                "Missing required booking fields", details={"missing": sorted(set(missing))}
            )
        if Decimal(request.total_amount) < 0:
            raise ValidationError("Total amount cannot be negative")

    @staticmethod
    def _is_vehicle_date_conflict(exc: IntegrityError) -> bool:
        message = str(exc.orig if exc.orig is not None else exc)
        return any(marker in message for marker in _VEHICLE_DATE_CONFLICT_MARKERS)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @BaseService.measure_operation("transition_booking")
    def transition(
        self,
        actor: Actor,
        booking_id: str,
        target: BookingStatus,
        terms: Optional[CancellationTerms] = None,
    ) -> TransitionResult:
        """
        Move a booking to ``target``.

        Moving to CANCELLED requires ``terms`` (reason and fee) computed
        beforehand. Moving to CONFIRMED requires a COMPLETED payment.
        """

        def _apply(session: Session) -> tuple:
            repo = RepositoryFactory.create_booking_repository(session)
            booking = repo.get_with_details(booking_id, for_update=True)
            if booking is None:
                raise NotFoundError("Booking not found")
            if not can_access_booking(actor, booking):
                raise ForbiddenError("You do not have permission to modify this booking")

            current = BookingStatus(booking.status)
            if target not in BOOKING_TRANSITIONS[current]:
                raise InvalidTransitionError(current.value, target.value)

            if target == BookingStatus.CONFIRMED:
                payment = booking.payment
                if payment is None or payment.status != PaymentStatus.COMPLETED.value:
                    raise InvalidTransitionError(
                        current.value,
                        target.value,
                        message="Booking cannot be confirmed before its payment completes",
                    )

            if target == BookingStatus.CANCELLED:
                if terms is None or not terms.reason:
                    raise ValidationError("Cancellation requires a reason and a computed fee")
                booking.cancellation_reason = terms.reason
                booking.cancellation_fee = terms.fee

            booking.apply_status(target)
            session.flush()
            return current, booking.tourist_id, booking.driver_id

        previous, tourist_id, driver_id = self.transaction(_apply, op_name="booking.transition")
        self.log_operation(
            "transition_booking",
            booking_id=booking_id,
            from_status=previous.value,
            to_status=target.value,
            actor_role=actor.role.value,
        )
        self._publish_transition(actor, booking_id, tourist_id, driver_id, previous, target, terms)
        return TransitionResult(booking_id=booking_id, status=target, previous_status=previous)

    def _publish_transition(
        self,
        actor: Actor,
        booking_id: str,
        tourist_id: str,
        driver_id: str,
        previous: BookingStatus,
        target: BookingStatus,
        terms: Optional[CancellationTerms],
    ) -> None:
        now = self.clock()
        if target == BookingStatus.CANCELLED and terms is not None:
            self.event_publisher.publish(
                BookingCancelled(
                    booking_id=booking_id,
                    tourist_id=tourist_id,
                    driver_id=driver_id,
                    reason=terms.reason,
                    fee=terms.fee,
                    cancelled_by=actor.role.value,
                    cancelled_at=now,
                )
            )
            return
        self.event_publisher.publish(
            BookingStatusChanged(
                booking_id=booking_id,
                tourist_id=tourist_id,
                driver_id=driver_id,
                old_status=previous.value,
                new_status=target.value,
                changed_by=actor.role.value,
                changed_at=now,
            )
        )

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, actor: Actor, booking_id: str, reason: Optional[str] = None
    ) -> CancellationResult:
        """
        Tourist cancellation with the time-based fee.

        The fee is computed from the booking as read, then the transition
        re-checks the status under a row lock before writing.
        """
        if not actor.is_tourist:
            raise ForbiddenError("Only tourists can cancel through this endpoint")

        booking = self._load_for_update_check(actor, booking_id)
        terms = cancellation_terms(booking, reason, now=self.clock())
        result = self.transition(actor, booking_id, BookingStatus.CANCELLED, terms=terms)
        return CancellationResult(
            booking_id=booking_id,
            status=result.status,
            previous_status=result.previous_status,
            fee=terms.fee,
            reason=terms.reason,
        )

    @BaseService.measure_operation("update_booking_status")
    def update_status(
        self,
        actor: Actor,
        booking_id: str,
        status: BookingStatus,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        """
        Status change requested through the status endpoint.

        Drivers and admins may drive any legal transition; their cancellations
        carry no fee. Tourists may only cancel, and pay the time-based fee.
        """
        if actor.is_tourist:
            if status != BookingStatus.CANCELLED:
                raise ForbiddenError("Tourists can only cancel their bookings")
            cancelled = self.cancel_booking(actor, booking_id, reason)
            return TransitionResult(
                booking_id=booking_id,
                status=cancelled.status,
                previous_status=cancelled.previous_status,
            )

        if actor.role not in (RoleName.DRIVER, RoleName.ADMIN):
            raise ForbiddenError("Not allowed to change booking status")

        terms = None
        if status == BookingStatus.CANCELLED:
            terms = CancellationTerms(
                reason=(reason or "").strip() or DEFAULT_STATUS_CANCELLATION_REASON,
                fee=FREE_CANCELLATION_FEE,
            )
        return self.transition(actor, booking_id, status, terms=terms)

    def _load_for_update_check(self, actor: Actor, booking_id: str) -> Booking:
        def _load(session: Session) -> Optional[Booking]:
            return RepositoryFactory.create_booking_repository(session).get_with_details(booking_id)

        booking = self.transaction(_load, op_name="booking.load")
        if booking is None:
            raise NotFoundError("Booking not found")
        if not can_access_booking(actor, booking):
            raise ForbiddenError("You do not have permission to modify this booking")
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @BaseService.measure_operation("get_booking")
    def get_booking(self, actor: Actor, booking_id: str) -> Booking:
        """Booking with payment; 404 when missing or not visible to the caller."""

        def _load(session: Session) -> Optional[Booking]:
            return RepositoryFactory.create_booking_repository(session).get_with_details(booking_id)

        booking = self.transaction(_load, op_name="booking.get")
        if booking is None or not can_access_booking(actor, booking):
            raise NotFoundError("Booking not found")
        return booking

    def list_tourist_bookings(self, actor: Actor, status: Optional[BookingStatus] = None) -> List[Booking]:
        if not actor.is_tourist:
            raise ForbiddenError("Only tourists have tourist bookings")
        return self.transaction(
            lambda session: RepositoryFactory.create_booking_repository(session).list_for_tourist(
                actor.role_id, status.value if status else None
            ),
            op_name="booking.list_tourist",
        )

    def list_driver_bookings(self, actor: Actor, status: Optional[BookingStatus] = None) -> List[Booking]:
        if not actor.is_driver:
            raise ForbiddenError("Only drivers have driver bookings")
        return self.transaction(
            lambda session: RepositoryFactory.create_booking_repository(session).list_for_driver(
                actor.role_id, status.value if status else None
            ),
            op_name="booking.list_driver",
        )

    def list_all_bookings(
        self,
        actor: Actor,
        *,
        status: Optional[BookingStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Booking]:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must not be after end_date")
        return self.transaction(
            lambda session: RepositoryFactory.create_booking_repository(session).list_all(
                status=status.value if status else None,
                start_date=start_date,
                end_date=end_date,
            ),
            op_name="booking.list_all",
        )
