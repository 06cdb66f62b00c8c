# backend/tripbooking/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService and AvailabilityService.

Endpoints:
    POST / - Create a Pending booking (tourist)
    POST /plan - Vehicles available for a trip (public)
    GET /tourist - Caller's bookings as tourist
    GET /driver - Caller's bookings as driver
    GET / - All bookings with filters (admin)
    GET /{booking_id} - Booking detail
    PATCH /{booking_id}/status - Drive the state machine
    POST /{booking_id}/cancel - Tourist cancellation with fee
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import (
    get_availability_service,
    get_booking_service,
    get_current_actor,
)
from ...core.enums import BookingStatus
from ...principal import Actor
from ...schemas.booking import (
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
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingRequest, BookingService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCreatedResponse:
    request = BookingRequest(
        vehicle_id=payload.vehicle_id,
        trip_date=payload.trip_date,
        trip_time=payload.trip_time,
        pickup_location=payload.pickup_location,
        total_amount=payload.total_amount,
        destination_id=payload.destination_id,
        dropoff_location=payload.dropoff_location,
        itinerary=payload.itinerary,
        notes=payload.notes,
    )
    created = await asyncio.to_thread(booking_service.create_booking, actor, request)
    return BookingCreatedResponse(booking_id=created.booking_id, payment_id=created.payment_id)


@router.post("/plan", response_model=List[AvailableVehicleResponse])
async def plan_trip(
    payload: TripPlanRequest = Body(...),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> List[AvailableVehicleResponse]:
    """Vehicles free on the date that seat every traveler, cheapest first."""
    vehicles = await asyncio.to_thread(
        availability_service.plan_trip,
        payload.trip_date,
        payload.num_travelers,
        payload.destination_id,
    )
    return [AvailableVehicleResponse.model_validate(v) for v in vehicles]


@router.get("/tourist", response_model=List[BookingResponse])
async def list_tourist_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    bookings = await asyncio.to_thread(booking_service.list_tourist_bookings, actor, status_filter)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/driver", response_model=List[BookingResponse])
async def list_driver_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    bookings = await asyncio.to_thread(booking_service.list_driver_bookings, actor, status_filter)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("", response_model=List[BookingResponse])
async def list_all_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    bookings = await asyncio.to_thread(
        lambda: booking_service.list_all_bookings(
            actor, status=status_filter, start_date=start_date, end_date=end_date
        )
    )
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    booking = await asyncio.to_thread(booking_service.get_booking, actor, booking_id)
    return BookingResponse.model_validate(booking)


@router.patch("/{booking_id}/status", response_model=BookingStatusResponse)
async def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdate = Body(...),
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingStatusResponse:
    result = await asyncio.to_thread(
        booking_service.update_status, actor, booking_id, payload.status, payload.reason
    )
    return BookingStatusResponse(
        booking_id=result.booking_id,
        status=result.status,
        previous_status=result.previous_status,
    )


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: str,
    payload: Optional[BookingCancelRequest] = Body(None),
    actor: Actor = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCancelResponse:
    reason = payload.reason if payload else None
    result = await asyncio.to_thread(booking_service.cancel_booking, actor, booking_id, reason)
    return BookingCancelResponse(
        booking_id=result.booking_id,
        status=result.status,
        fee=result.fee,
        reason=result.reason,
    )
