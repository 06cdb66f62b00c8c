# backend/tripbooking/repositories/booking_repository.py
"""
Booking Repository.

Queries over bookings: the availability probe used before creation and the
role-scoped listings used by the read endpoints.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.enums import ACTIVE_BOOKING_STATUSES
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.catalog import Vehicle
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_ACTIVE_VALUES = [s.value for s in ACTIVE_BOOKING_STATUSES]


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def has_active_booking(self, vehicle_id: str, trip_date: date) -> bool:
        """True when a Pending or Confirmed booking holds ``vehicle_id`` on ``trip_date``."""
        try:
            return (
                self.db.query(Booking.id)
                .filter(
                    and_(
                        Booking.vehicle_id == vehicle_id,
                        Booking.trip_date == trip_date,
                        Booking.status.in_(_ACTIVE_VALUES),
                    )
                )
                .first()
                is not None
            )
        except DBAPIError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking vehicle availability: {str(e)}")
            raise RepositoryException(f"Failed to check availability: {str(e)}")

    def get_with_details(self, booking_id: str, *, for_update: bool = False) -> Optional[Booking]:
        """Booking with its vehicle and payment loaded."""
        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.vehicle), joinedload(Booking.payment))
            .filter(Booking.id == booking_id)
        )
        if for_update:
            query = query.with_for_update(of=Booking)
        return query.first()

    def list_for_tourist(self, tourist_id: str, status: Optional[str] = None) -> List[Booking]:
        query = self.db.query(Booking).options(joinedload(Booking.payment)).filter(
            Booking.tourist_id == tourist_id
        )
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.trip_date.desc(), Booking.trip_time.desc()).all()

    def list_for_driver(self, driver_id: str, status: Optional[str] = None) -> List[Booking]:
        query = (
            self.db.query(Booking)
            .join(Vehicle, Vehicle.id == Booking.vehicle_id)
            .options(joinedload(Booking.payment))
            .filter(Vehicle.driver_id == driver_id)
        )
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.trip_date.desc(), Booking.trip_time.desc()).all()

    def list_all(
        self,
        *,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Booking]:
        query = self.db.query(Booking).options(joinedload(Booking.payment))
        if status:
            query = query.filter(Booking.status == status)
        if start_date:
            query = query.filter(Booking.trip_date >= start_date)
        if end_date:
            query = query.filter(Booking.trip_date <= end_date)
        return query.order_by(Booking.trip_date.desc(), Booking.trip_time.desc()).all()
