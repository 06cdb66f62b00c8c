# backend/tripbooking/repositories/catalog_repository.py
"""
Catalog Repository.

Read-only lookups over tourists, drivers, vehicles and destinations.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
import logging
from typing import List, Optional

from sqlalchemy import and_, exists
from sqlalchemy.orm import Session

from ..core.enums import ACTIVE_BOOKING_STATUSES, RecordStatus, RoleName
from ..models.booking import Booking
from ..models.catalog import Destination, Driver, Tourist, Vehicle
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VehicleProfile:
    vehicle_id: str
    driver_id: str
    capacity: int
    price_per_day: Decimal


@dataclass(frozen=True)
class Contact:
    email: str
    name: str


class CatalogRepository(BaseRepository[Vehicle]):
    """Reference data lookups. Vehicles are the primary model."""

    def __init__(self, db: Session):
        super().__init__(db, Vehicle)

    def get_vehicle_profile(self, vehicle_id: str) -> Optional[VehicleProfile]:
        vehicle = self.get_by_id(vehicle_id)
        if vehicle is None:
            return None
        return VehicleProfile(
            vehicle_id=vehicle.id,
            driver_id=vehicle.driver_id,
            capacity=vehicle.capacity,
            price_per_day=vehicle.price_per_day,
        )

    def get_contact(self, role: RoleName, person_id: str) -> Optional[Contact]:
        """Email address and display name for a tourist or driver."""
        model = {RoleName.TOURIST: Tourist, RoleName.DRIVER: Driver}.get(role)
        if model is None:
            return None
        row = self.db.query(model).filter(model.id == person_id).first()
        if row is None:
            return None
        return Contact(email=row.email, name=row.name)

    def get_active_destination(self, destination_id: str) -> Optional[Destination]:
        return (
            self.db.query(Destination)
            .filter(
                Destination.id == destination_id,
                Destination.status == RecordStatus.ACTIVE.value,
            )
            .first()
        )

    def find_available_vehicles(self, trip_date: date, min_capacity: int) -> List[Vehicle]:
        """
        Active vehicles of active drivers that seat ``min_capacity`` and are
        not held by a Pending or Confirmed booking on ``trip_date``.

        Cheapest first.
        """
        booked = exists().where(
            and_(
                Booking.vehicle_id == Vehicle.id,
                Booking.trip_date == trip_date,
                Booking.status.in_([s.value for s in ACTIVE_BOOKING_STATUSES]),
            )
        )
        return (
            self.db.query(Vehicle)
            .join(Driver, Driver.id == Vehicle.driver_id)
            .filter(
                Vehicle.status == RecordStatus.ACTIVE.value,
                Driver.status == RecordStatus.ACTIVE.value,
                Vehicle.capacity >= min_capacity,
                ~booked,
            )
            .order_by(Vehicle.price_per_day.asc(), Vehicle.id.asc())
            .all()
        )
