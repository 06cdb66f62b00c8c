# backend/tripbooking/services/availability_service.py
"""
Availability Service.

Answers whether a vehicle is free on a date and runs the trip-planning
search. Both are advisory reads: the partial unique index on
(vehicle_id, trip_date) is what actually prevents two live bookings
from holding the same vehicle.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError, ValidationError
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailableVehicle:
    vehicle_id: str
    driver_id: str
    driver_name: str
    make: str
    model: str
    vehicle_type: str
    capacity: int
    price_per_day: Decimal


class AvailabilityService(BaseService):
    """Vehicle availability checks and trip planning."""

    def is_available(self, vehicle_id: str, trip_date: date, db: Optional[Session] = None) -> bool:
        """
        True when no Pending or Confirmed booking holds the vehicle on that date.

        Pass ``db`` to run inside an existing unit of work.
        """
        if db is not None:
            return not RepositoryFactory.create_booking_repository(db).has_active_booking(
                vehicle_id, trip_date
            )
        return self.transaction(
            lambda session: self.is_available(vehicle_id, trip_date, session),
            op_name="availability.is_available",
        )

    @BaseService.measure_operation("plan_trip")
    def plan_trip(
        self,
        trip_date: date,
        num_travelers: int,
        destination_id: Optional[str] = None,
    ) -> List[AvailableVehicle]:
        """Vehicles that can carry ``num_travelers`` on ``trip_date``, cheapest first."""
        if num_travelers < 1:
            raise ValidationError("Number of travelers must be at least 1")

        def _search(session: Session) -> List[AvailableVehicle]:
            catalog = RepositoryFactory.create_catalog_repository(session)
            if destination_id and catalog.get_active_destination(destination_id) is None:
                raise NotFoundError("Destination not found or inactive")
            return [
                AvailableVehicle(
                    vehicle_id=v.id,
                    driver_id=v.driver_id,
                    driver_name=v.driver.name,
                    make=v.make,
                    model=v.model,
                    vehicle_type=v.vehicle_type,
                    capacity=v.capacity,
                    price_per_day=v.price_per_day,
                )
                for v in catalog.find_available_vehicles(trip_date, num_travelers)
            ]

        results = self.transaction(_search, op_name="availability.plan_trip")
        self.log_operation(
            "plan_trip", trip_date=str(trip_date), travelers=num_travelers, matches=len(results)
        )
        return results
