# backend/tripbooking/core/constants.py
"""Project-wide constants."""

from decimal import Decimal

BRAND_NAME = "TripBooking"

DEFAULT_CANCELLATION_REASON = "Cancelled by tourist"
DEFAULT_STATUS_CANCELLATION_REASON = "No reason provided"
DEFAULT_PAYMENT_METHOD = "Online"

# Cancellation fee schedule, in currency units
LATE_CANCELLATION_WINDOW_HOURS = 24
SHORT_NOTICE_CANCELLATION_WINDOW_HOURS = 72
LATE_CANCELLATION_FEE = Decimal("50.00")
SHORT_NOTICE_CANCELLATION_FEE = Decimal("20.00")
FREE_CANCELLATION_FEE = Decimal("0.00")

MONEY_QUANTUM = Decimal("0.01")
