"""
Database models for the trip booking platform.

Importing this package registers every table on ``Base.metadata``:
- Catalog reference data (tourists, drivers, vehicles, destinations)
- Bookings and their payments
- Saved payment methods
- Background jobs and reconciliation cases
"""

from .background_job import BackgroundJob
from .booking import Booking
from .catalog import Destination, Driver, Tourist, Vehicle
from .payment import Payment, SavedPaymentMethod
from .reconciliation import PaymentReconciliation

__all__ = [
    "BackgroundJob",
    "Booking",
    "Destination",
    "Driver",
    "Payment",
    "PaymentReconciliation",
    "SavedPaymentMethod",
    "Tourist",
    "Vehicle",
]
