# backend/tripbooking/schemas/booking.py
"""Booking request and response schemas."""

from datetime import date, datetime, time
from typing import Any, List, Optional

from pydantic import ConfigDict, Field, field_validator

from ..core.enums import BookingStatus
from .base import Money, StandardizedModel, StrictRequestModel


def _normalize_status(value: object) -> object:
    # Clients send "Confirmed" as often as "CONFIRMED"
    if isinstance(value, str):
        return value.strip().upper()
    return value


class BookingCreate(StrictRequestModel):
    """Create a Pending booking for one vehicle on one trip date."""

    vehicle_id: str = Field(..., min_length=1, description="Vehicle to book")
    destination_id: Optional[str] = Field(None, description="Optional catalog destination")
    trip_date: date = Field(..., description="Trip date (YYYY-MM-DD)")
    trip_time: time = Field(..., description="Pickup time")
    pickup_location: str = Field(..., min_length=1, max_length=255)
    dropoff_location: Optional[str] = Field(None, max_length=255)
    itinerary: Optional[List[Any]] = Field(None, description="Ordered stop descriptors")
    notes: Optional[str] = Field(None, max_length=2000)
    total_amount: Money = Field(..., description="Agreed total for the trip")

    @field_validator("pickup_location")
    @classmethod
    def _pickup_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("pickup_location must not be blank")
        return value.strip()

    @field_validator("total_amount")
    @classmethod
    def _amount_not_negative(cls, value: Money) -> Money:
        if value < 0:
            raise ValueError("total_amount cannot be negative")
        return value


class BookingStatusUpdate(StrictRequestModel):
    status: BookingStatus
    reason: Optional[str] = Field(None, max_length=1000)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize(cls, value: object) -> object:
        return _normalize_status(value)


class BookingCancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=1000)


class TripPlanRequest(StrictRequestModel):
    trip_date: date = Field(..., alias="date")
    num_travelers: int = Field(..., ge=1)
    destination_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class BookingCreatedResponse(StandardizedModel):
    booking_id: str
    payment_id: str


class BookingStatusResponse(StandardizedModel):
    booking_id: str
    status: BookingStatus
    previous_status: Optional[BookingStatus] = None


class BookingCancelResponse(StandardizedModel):
    booking_id: str
    status: BookingStatus
    fee: Money
    reason: str


class PaymentSummary(StandardizedModel):
    id: str
    method: str
    amount: Money
    status: str
    transaction_id: Optional[str] = None
    processed_at: Optional[datetime] = None


class BookingResponse(StandardizedModel):
    id: str
    tourist_id: str
    vehicle_id: str
    driver_id: Optional[str] = None
    destination_id: Optional[str] = None
    trip_date: date
    trip_time: time
    pickup_location: str
    dropoff_location: Optional[str] = None
    status: str
    total_amount: Money
    notes: Optional[str] = None
    itinerary: List[Any] = Field(default_factory=list, validation_alias="itinerary_stops")
    cancellation_reason: Optional[str] = None
    cancellation_fee: Optional[Money] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    payment: Optional[PaymentSummary] = None


class AvailableVehicleResponse(StandardizedModel):
    vehicle_id: str
    driver_id: str
    driver_name: str
    make: str
    model: str
    vehicle_type: str
    capacity: int
    price_per_day: Money
