import pytest

from tripbooking.core.enums import (
    ACTIVE_BOOKING_STATUSES,
    BOOKING_TRANSITIONS,
    BookingStatus,
)

LEGAL = {
    (BookingStatus.PENDING, BookingStatus.CONFIRMED),
    (BookingStatus.PENDING, BookingStatus.CANCELLED),
    (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
}


@pytest.mark.parametrize("current", list(BookingStatus))
@pytest.mark.parametrize("target", list(BookingStatus))
def test_transition_table(current, target):
    assert (target in BOOKING_TRANSITIONS[current]) == ((current, target) in LEGAL)


def test_terminal_statuses_have_no_successors():
    for status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
        assert status.is_terminal
        assert BOOKING_TRANSITIONS[status] == frozenset()


def test_only_pending_and_confirmed_hold_a_vehicle():
    assert ACTIVE_BOOKING_STATUSES == {BookingStatus.PENDING, BookingStatus.CONFIRMED}
    assert not BookingStatus.PENDING.is_terminal
