"""Booking and payment domain events."""
from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict


@dataclass
class BookingCreated:
    """Fired after a booking and its payment stub are committed."""

    booking_id: str
    tourist_id: str
    driver_id: str
    vehicle_id: str
    trip_date: date
    total_amount: Decimal
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingStatusChanged:
    """Fired after a driver or admin moves a booking to a new status."""

    booking_id: str
    tourist_id: str
    driver_id: str
    old_status: str
    new_status: str
    changed_by: str  # actor role
    changed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingCancelled:
    """Fired after a booking is cancelled."""

    booking_id: str
    tourist_id: str
    driver_id: str
    reason: str
    fee: Decimal
    cancelled_by: str  # actor role
    cancelled_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PaymentCompleted:
    """Fired after a payment settles and the booking is confirmed."""

    booking_id: str
    payment_id: str
    tourist_id: str
    driver_id: str
    amount: Decimal
    transaction_id: str
    processed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
