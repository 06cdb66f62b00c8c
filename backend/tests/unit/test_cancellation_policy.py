from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from tripbooking.core.enums import BookingStatus
from tripbooking.core.exceptions import InvalidTransitionError
from tripbooking.services.cancellation_policy import (
    cancellation_terms,
    compute_fee,
    fee_for_notice,
    trip_start,
)

NOW = datetime(2030, 3, 10, 8, 0, tzinfo=timezone.utc)


def _booking(hours: float, status: BookingStatus = BookingStatus.CONFIRMED, minutes: int = 0):
    start = NOW + timedelta(hours=hours, minutes=minutes)
    return SimpleNamespace(
        status=status.value,
        trip_date=start.date(),
        trip_time=start.time().replace(tzinfo=None),
    )


class TestFeeBoundaries:
    @pytest.mark.parametrize(
        "notice, expected",
        [
            (timedelta(hours=23, minutes=59), Decimal("50.00")),
            (timedelta(hours=24), Decimal("20.00")),
            (timedelta(hours=71, minutes=59), Decimal("20.00")),
            (timedelta(hours=72), Decimal("0.00")),
            (timedelta(days=30), Decimal("0.00")),
            (timedelta(hours=-2), Decimal("50.00")),
        ],
    )
    def test_fee_for_notice(self, notice, expected):
        assert fee_for_notice(notice) == expected

    def test_compute_fee_uses_trip_date_and_time(self):
        assert compute_fee(_booking(23, minutes=59), now=NOW) == Decimal("50.00")
        assert compute_fee(_booking(24), now=NOW) == Decimal("20.00")
        assert compute_fee(_booking(71, minutes=59), now=NOW) == Decimal("20.00")
        assert compute_fee(_booking(72), now=NOW) == Decimal("0.00")

    def test_pending_booking_can_be_priced(self):
        assert compute_fee(_booking(10, BookingStatus.PENDING), now=NOW) == Decimal("50.00")


class TestTerminalBookings:
    @pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
    def test_terminal_status_rejected(self, status):
        with pytest.raises(InvalidTransitionError) as exc_info:
            compute_fee(_booking(100, status), now=NOW)
        assert exc_info.value.details["current_status"] == status.value
        assert exc_info.value.details["requested_status"] == "CANCELLED"


class TestCancellationTerms:
    def test_default_reason(self):
        terms = cancellation_terms(_booking(10), None, now=NOW)
        assert terms.reason == "Cancelled by tourist"
        assert terms.fee == Decimal("50.00")

    def test_blank_reason_uses_default(self):
        assert cancellation_terms(_booking(100), "   ", now=NOW).reason == "Cancelled by tourist"

    def test_supplied_reason_is_trimmed(self):
        terms = cancellation_terms(_booking(100), "  Change of plans ", now=NOW)
        assert terms.reason == "Change of plans"
        assert terms.fee == Decimal("0.00")


def test_trip_start_is_interpreted_in_trip_timezone():
    start = trip_start(date(2030, 1, 15), time(9, 0), tz_name="America/New_York")
    assert start.astimezone(timezone.utc) == datetime(2030, 1, 15, 14, 0, tzinfo=timezone.utc)
