# backend/tripbooking/models/booking.py
"""
Booking model for the trip booking platform.

A booking reserves one vehicle (and through it, one driver) for a tourist
on a trip date. Pending and Confirmed bookings hold the vehicle's date;
Completed and Cancelled bookings are kept for history and never block it.
"""

from datetime import datetime, timezone
import json
import logging
from typing import Any, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import BookingStatus
from ..database import Base

logger = logging.getLogger(__name__)

_ACTIVE_STATUS_SQL = "status IN ('PENDING', 'CONFIRMED')"


class Booking(Base):
    """Tourist reservation of a vehicle for a trip date."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    tourist_id = Column(String(26), ForeignKey("tourists.id"), nullable=False, index=True)
    vehicle_id = Column(String(26), ForeignKey("vehicles.id"), nullable=False)
    destination_id = Column(String(26), ForeignKey("destinations.id"), nullable=True)

    trip_date = Column(Date, nullable=False, index=True)
    trip_time = Column(Time, nullable=False)
    pickup_location = Column(String(255), nullable=False)
    dropoff_location = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    notes = Column(Text, nullable=True)
    # Ordered list of stop descriptors, stored as JSON text
    itinerary = Column(Text, nullable=True)

    cancellation_reason = Column(Text, nullable=True)
    cancellation_fee = Column(Numeric(10, 2), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    vehicle = relationship("Vehicle", lazy="joined")
    payment = relationship(
        "Payment", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'COMPLETED', 'CANCELLED')",
            name="ck_bookings_status",
        ),
        CheckConstraint("total_amount >= 0", name="ck_bookings_total_non_negative"),
        # At most one non-terminal booking per vehicle per date
        Index(
            "uq_bookings_vehicle_date_active",
            "vehicle_id",
            "trip_date",
            unique=True,
            postgresql_where=text(_ACTIVE_STATUS_SQL),
            sqlite_where=text(_ACTIVE_STATUS_SQL),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: tourist={self.tourist_id}, vehicle={self.vehicle_id}, "
            f"date={self.trip_date}, status={self.status}>"
        )

    @property
    def driver_id(self) -> Optional[str]:
        return self.vehicle.driver_id if self.vehicle is not None else None

    @property
    def itinerary_stops(self) -> List[Any]:
        """Parsed itinerary; malformed stored text degrades to an empty list."""
        if not self.itinerary:
            return []
        try:
            parsed = json.loads(self.itinerary)
        except (TypeError, ValueError):
            logger.warning("Booking %s has malformed itinerary; returning empty list", self.id)
            return []
        return parsed if isinstance(parsed, list) else []

    def set_itinerary(self, stops: Optional[List[Any]]) -> None:
        self.itinerary = json.dumps(stops) if stops else None

    def apply_status(self, status: BookingStatus) -> None:
        """Write a new status and its lifecycle timestamp."""
        now = datetime.now(timezone.utc)
        self.status = status.value
        self.updated_at = now
        if status == BookingStatus.CANCELLED:
            self.cancelled_at = now
        elif status == BookingStatus.COMPLETED:
            self.completed_at = now
