# backend/tripbooking/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from functools import lru_cache
import logging

from fastapi import Depends

from ...core.config import settings
from ...database.gateway import PersistenceGateway
from ...events.publisher import EventPublisher
from ...integrations import FakePaymentGateway, PaymentGateway, StripePaymentGateway
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.payment_service import PaymentService
from ...services.reconciliation_service import ReconciliationService
from ...services.saved_payment_method_service import SavedPaymentMethodService
from .database import get_persistence

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_payment_gateway() -> PaymentGateway:
    """
    Stripe when a secret key is configured, otherwise the in-memory fake.

    Production refuses to fall back to the fake gateway.
    """
    if settings.stripe_secret_key is not None:
        return StripePaymentGateway(
            api_key=settings.stripe_secret_key, timeout=settings.stripe_timeout_seconds
        )
    if not settings.use_fake_gateway:
        raise RuntimeError("STRIPE_SECRET_KEY must be set in production")
    logger.warning("Stripe is not configured - using the fake payment gateway")
    return FakePaymentGateway()


def get_event_publisher(persistence: PersistenceGateway = Depends(get_persistence)) -> EventPublisher:
    return EventPublisher(persistence)


def get_availability_service(
    persistence: PersistenceGateway = Depends(get_persistence),
) -> AvailabilityService:
    return AvailabilityService(persistence)


def get_booking_service(
    persistence: PersistenceGateway = Depends(get_persistence),
    event_publisher: EventPublisher = Depends(get_event_publisher),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> BookingService:
    return BookingService(persistence, event_publisher, availability_service)


def get_reconciliation_service(
    persistence: PersistenceGateway = Depends(get_persistence),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> ReconciliationService:
    return ReconciliationService(persistence, event_publisher)


def get_payment_service(
    persistence: PersistenceGateway = Depends(get_persistence),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    event_publisher: EventPublisher = Depends(get_event_publisher),
    reconciliation_service: ReconciliationService = Depends(get_reconciliation_service),
) -> PaymentService:
    return PaymentService(persistence, gateway, event_publisher, reconciliation_service)


def get_saved_payment_method_service(
    persistence: PersistenceGateway = Depends(get_persistence),
) -> SavedPaymentMethodService:
    return SavedPaymentMethodService(persistence)
