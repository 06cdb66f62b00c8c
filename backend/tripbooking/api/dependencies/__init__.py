# backend/tripbooking/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_actor, require_role
from .database import get_persistence
from .services import (
    get_availability_service,
    get_booking_service,
    get_payment_gateway,
    get_payment_service,
    get_reconciliation_service,
    get_saved_payment_method_service,
)

__all__ = [
    # Auth
    "get_current_actor",
    "require_role",
    # Database
    "get_persistence",
    # Services
    "get_availability_service",
    "get_booking_service",
    "get_payment_gateway",
    "get_payment_service",
    "get_reconciliation_service",
    "get_saved_payment_method_service",
]
