"""Domain events published after booking and payment transitions."""

from .booking_events import (
    BookingCancelled,
    BookingCreated,
    BookingStatusChanged,
    PaymentCompleted,
)
from .publisher import EVENT_JOB_PREFIX, EventPublisher

__all__ = [
    "BookingCancelled",
    "BookingCreated",
    "BookingStatusChanged",
    "EVENT_JOB_PREFIX",
    "EventPublisher",
    "PaymentCompleted",
]
