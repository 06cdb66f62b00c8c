# backend/tripbooking/models/catalog.py
"""
Read-only reference data: tourists, drivers, vehicles and destinations.

Profile management lives elsewhere; the booking core only reads these rows
for ownership checks, trip planning and notification addressing.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import RecordStatus
from ..database import Base


class Tourist(Base):
    __tablename__ = "tourists"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Driver(Base):
    __tablename__ = "drivers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(120), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default=RecordStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    vehicles = relationship("Vehicle", back_populates="driver")


class Vehicle(Base):
    """A bookable vehicle. Each vehicle belongs to exactly one driver."""

    __tablename__ = "vehicles"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    driver_id = Column(String(26), ForeignKey("drivers.id"), nullable=False, index=True)
    make = Column(String(60), nullable=False)
    model = Column(String(60), nullable=False)
    vehicle_type = Column(String(40), nullable=False)
    capacity = Column(Integer, nullable=False)
    price_per_day = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=RecordStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    driver = relationship("Driver", back_populates="vehicles", lazy="joined")

    def __repr__(self) -> str:
        return f"<Vehicle {self.id}: {self.make} {self.model}, capacity={self.capacity}>"


class Destination(Base):
    __tablename__ = "destinations"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(120), nullable=False)
    location = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=RecordStatus.ACTIVE.value)
