"""
Repository layer.

Each repository wraps data access for one aggregate and receives the
session bound by the current unit of work.
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .catalog_repository import CatalogRepository, Contact, VehicleProfile
from .factory import RepositoryFactory
from .job_repository import JobRepository
from .payment_repository import PaymentRepository, SavedPaymentMethodRepository
from .reconciliation_repository import ReconciliationRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "CatalogRepository",
    "Contact",
    "JobRepository",
    "PaymentRepository",
    "ReconciliationRepository",
    "RepositoryFactory",
    "SavedPaymentMethodRepository",
    "VehicleProfile",
]
