"""Pydantic request/response schemas for the v1 API."""

from .booking import (
    AvailableVehicleResponse,
    BookingCancelRequest,
    BookingCancelResponse,
    BookingCreate,
    BookingCreatedResponse,
    BookingResponse,
    BookingStatusResponse,
    BookingStatusUpdate,
    TripPlanRequest,
)
from .common import ErrorResponse, HealthResponse, SuccessResponse
from .payment import (
    CardDetailsIn,
    PaymentResponse,
    ProcessPaymentRequest,
    ProcessPaymentResponse,
    ReconciliationCaseResponse,
    SavedPaymentMethodResponse,
)

__all__ = [
    "AvailableVehicleResponse",
    "BookingCancelRequest",
    "BookingCancelResponse",
    "BookingCreate",
    "BookingCreatedResponse",
    "BookingResponse",
    "BookingStatusResponse",
    "BookingStatusUpdate",
    "CardDetailsIn",
    "ErrorResponse",
    "HealthResponse",
    "PaymentResponse",
    "ProcessPaymentRequest",
    "ProcessPaymentResponse",
    "ReconciliationCaseResponse",
    "SavedPaymentMethodResponse",
    "SuccessResponse",
    "TripPlanRequest",
]
