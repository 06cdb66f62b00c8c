"""Versioned API routers mounted under /api/v1."""

from . import bookings, health, payments

__all__ = ["bookings", "health", "payments"]
