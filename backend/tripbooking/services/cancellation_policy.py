"""
Cancellation fee policy.

The fee is a pure function of the time remaining until the trip starts:

    hours_until_trip < 24         -> 50
    24 <= hours_until_trip < 72   -> 20
    hours_until_trip >= 72        -> 0

Trip date and time are interpreted in ``settings.trip_timezone``.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional
from zoneinfo import ZoneInfo

from ..core.config import settings
from ..core.constants import (
    DEFAULT_CANCELLATION_REASON,
    FREE_CANCELLATION_FEE,
    LATE_CANCELLATION_FEE,
    LATE_CANCELLATION_WINDOW_HOURS,
    SHORT_NOTICE_CANCELLATION_FEE,
    SHORT_NOTICE_CANCELLATION_WINDOW_HOURS,
)
from ..core.enums import BookingStatus
from ..core.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class CancellationTerms:
    """Reason and fee attached to a Cancelled transition."""

    reason: str
    fee: Decimal


def trip_start(trip_date: date, trip_time: time, tz_name: Optional[str] = None) -> datetime:
    """Aware datetime at which the trip begins."""
    tz = ZoneInfo(tz_name or settings.trip_timezone)
    return datetime.combine(trip_date, trip_time, tzinfo=tz)


def time_until_trip(trip_date: date, trip_time: time, now: Optional[datetime] = None) -> timedelta:
    current = now or datetime.now(timezone.utc)
    return trip_start(trip_date, trip_time) - current


def fee_for_notice(notice: timedelta) -> Decimal:
    if notice < timedelta(hours=LATE_CANCELLATION_WINDOW_HOURS):
        return LATE_CANCELLATION_FEE
    if notice < timedelta(hours=SHORT_NOTICE_CANCELLATION_WINDOW_HOURS):
        return SHORT_NOTICE_CANCELLATION_FEE
    return FREE_CANCELLATION_FEE


def compute_fee(booking: Any, now: Optional[datetime] = None) -> Decimal:
    """
    Cancellation fee for ``booking`` at ``now``.

    Raises InvalidTransitionError when the booking is already Cancelled or
    Completed.
    """
    status = BookingStatus(booking.status)
    if status.is_terminal:
        raise InvalidTransitionError(status.value, BookingStatus.CANCELLED.value)
    return fee_for_notice(time_until_trip(booking.trip_date, booking.trip_time, now))


def cancellation_terms(
    booking: Any, reason: Optional[str] = None, now: Optional[datetime] = None
) -> CancellationTerms:
    cleaned = (reason or "").strip()
    return CancellationTerms(
        reason=cleaned or DEFAULT_CANCELLATION_REASON,
        fee=compute_fee(booking, now),
    )
