# backend/tripbooking/core/enums.py
"""
Core enums for the trip booking platform.

These enums are persisted as their string VALUES, never their names.
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles an authenticated actor can hold."""

    ADMIN = "admin"
    DRIVER = "driver"
    TOURIST = "tourist"


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"  # Created, awaiting payment
    CONFIRMED = "CONFIRMED"  # Paid
    COMPLETED = "COMPLETED"  # Trip done
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_BOOKING_STATUSES


TERMINAL_BOOKING_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})
ACTIVE_BOOKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

# Legal successors for each status. Terminal statuses have none.
BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


class PaymentStatus(str, Enum):
    """Local ledger status of a booking payment."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class GatewayStatus(str, Enum):
    """Last known outcome reported by the payment gateway."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    INDETERMINATE = "indeterminate"


class ReconciliationStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class RecordStatus(str, Enum):
    """Active flag used by catalog reference rows."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
