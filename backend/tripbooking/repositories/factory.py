# backend/tripbooking/repositories/factory.py
"""
Repository Factory.

Centralizes repository creation so services build every repository the
same way from the session bound to their unit of work.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .catalog_repository import CatalogRepository
    from .job_repository import JobRepository
    from .payment_repository import PaymentRepository, SavedPaymentMethodRepository
    from .reconciliation_repository import ReconciliationRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)

    @staticmethod
    def create_saved_payment_method_repository(db: Session) -> "SavedPaymentMethodRepository":
        from .payment_repository import SavedPaymentMethodRepository

        return SavedPaymentMethodRepository(db)

    @staticmethod
    def create_catalog_repository(db: Session) -> "CatalogRepository":
        from .catalog_repository import CatalogRepository

        return CatalogRepository(db)

    @staticmethod
    def create_reconciliation_repository(db: Session) -> "ReconciliationRepository":
        from .reconciliation_repository import ReconciliationRepository

        return ReconciliationRepository(db)

    @staticmethod
    def create_job_repository(db: Session) -> "JobRepository":
        from .job_repository import JobRepository

        return JobRepository(db)
