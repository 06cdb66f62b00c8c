# backend/tests/conftest.py
"""
Shared pytest fixtures.

Every test gets a fresh in-memory SQLite database (StaticPool, so all
sessions share one connection) with the full schema, a small seeded
catalog, and a persistence gateway bound to it. Service fixtures use a
fixed clock so fee windows are deterministic.
"""

from dataclasses import dataclass
from datetime import date, time, timedelta
from decimal import Decimal
from typing import Callable, Dict, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tripbooking.core.enums import RecordStatus, RoleName
from tripbooking.core.ulid_helper import generate_ulid
from tripbooking.database import Base
from tripbooking.database.gateway import PersistenceGateway
from tripbooking.events.publisher import EventPublisher
from tripbooking.integrations.payment_gateway import FakePaymentGateway
from tripbooking.models import Destination, Driver, Tourist, Vehicle
from tripbooking.principal import Actor
from tripbooking.services.availability_service import AvailabilityService
from tripbooking.services.booking_service import BookingRequest, BookingService
from tripbooking.services.email import ConsoleMailer
from tripbooking.services.notification_service import NotificationService
from tripbooking.services.payment_service import PaymentService
from tripbooking.services.reconciliation_service import ReconciliationService
from tripbooking.services.saved_payment_method_service import SavedPaymentMethodService

from tests.helpers.clock import NOW, trip_at


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(eng, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    """Session for arranging and asserting state directly."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def persistence(engine, session_factory) -> PersistenceGateway:
    return PersistenceGateway(engine, session_factory, sleep=lambda _seconds: None)


# ============================================================================
# Catalog seed
# ============================================================================


@dataclass
class Seed:
    tourist: Tourist
    other_tourist: Tourist
    driver: Driver
    other_driver: Driver
    vehicle: Vehicle
    van: Vehicle
    other_vehicle: Vehicle
    destination: Destination
    closed_destination: Destination


@pytest.fixture
def seed(db) -> Seed:
    tourist = Tourist(id=generate_ulid(), name="Ana Tourist", email="ana@example.com")
    other_tourist = Tourist(id=generate_ulid(), name="Ben Tourist", email="ben@example.com")
    driver = Driver(id=generate_ulid(), name="Dev Driver", email="dev@example.com")
    other_driver = Driver(id=generate_ulid(), name="Ola Driver", email="ola@example.com")
    db.add_all([tourist, other_tourist, driver, other_driver])
    db.flush()

    vehicle = Vehicle(
        id=generate_ulid(),
        driver_id=driver.id,
        make="Toyota",
        model="Prius",
        vehicle_type="Sedan",
        capacity=4,
        price_per_day=Decimal("80.00"),
    )
    van = Vehicle(
        id=generate_ulid(),
        driver_id=driver.id,
        make="Ford",
        model="Transit",
        vehicle_type="Van",
        capacity=12,
        price_per_day=Decimal("150.00"),
    )
    other_vehicle = Vehicle(
        id=generate_ulid(),
        driver_id=other_driver.id,
        make="Honda",
        model="Odyssey",
        vehicle_type="Minivan",
        capacity=7,
        price_per_day=Decimal("120.00"),
    )
    destination = Destination(id=generate_ulid(), name="Old Town", location="Riverside")
    closed_destination = Destination(
        id=generate_ulid(),
        name="Closed Falls",
        location="North Ridge",
        status=RecordStatus.INACTIVE.value,
    )
    db.add_all([vehicle, van, other_vehicle, destination, closed_destination])
    db.commit()
    return Seed(
        tourist=tourist,
        other_tourist=other_tourist,
        driver=driver,
        other_driver=other_driver,
        vehicle=vehicle,
        van=van,
        other_vehicle=other_vehicle,
        destination=destination,
        closed_destination=closed_destination,
    )


# ============================================================================
# Actors
# ============================================================================


@pytest.fixture
def tourist(seed) -> Actor:
    return Actor(user_id="user-ana", role=RoleName.TOURIST, role_id=seed.tourist.id, email="ana@example.com")


@pytest.fixture
def other_tourist(seed) -> Actor:
    return Actor(
        user_id="user-ben", role=RoleName.TOURIST, role_id=seed.other_tourist.id, email="ben@example.com"
    )


@pytest.fixture
def driver(seed) -> Actor:
    return Actor(user_id="user-dev", role=RoleName.DRIVER, role_id=seed.driver.id, email="dev@example.com")


@pytest.fixture
def other_driver(seed) -> Actor:
    return Actor(
        user_id="user-ola", role=RoleName.DRIVER, role_id=seed.other_driver.id, email="ola@example.com"
    )


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="user-admin", role=RoleName.ADMIN, role_id="user-admin", email="admin@example.com")


# ============================================================================
# Services
# ============================================================================


@pytest.fixture
def fake_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def event_publisher(persistence) -> EventPublisher:
    return EventPublisher(persistence)


@pytest.fixture
def availability_service(persistence) -> AvailabilityService:
    return AvailabilityService(persistence)


@pytest.fixture
def booking_service(persistence, event_publisher, availability_service) -> BookingService:
    return BookingService(persistence, event_publisher, availability_service, clock=lambda: NOW)


@pytest.fixture
def reconciliation_service(persistence, event_publisher) -> ReconciliationService:
    return ReconciliationService(persistence, event_publisher)


@pytest.fixture
def payment_service(persistence, fake_gateway, event_publisher, reconciliation_service) -> PaymentService:
    return PaymentService(
        persistence, fake_gateway, event_publisher, reconciliation_service, clock=lambda: NOW
    )


@pytest.fixture
def saved_method_service(persistence) -> SavedPaymentMethodService:
    return SavedPaymentMethodService(persistence)


@pytest.fixture
def mailer() -> ConsoleMailer:
    return ConsoleMailer()


@pytest.fixture
def notification_service(persistence, mailer) -> NotificationService:
    return NotificationService(persistence, mailer=mailer)


@pytest.fixture
def create_booking(booking_service, tourist, seed) -> Callable[..., str]:
    """Create a Pending booking through the service and return its id."""

    def _create(
        actor: Optional[Actor] = None,
        *,
        vehicle_id: Optional[str] = None,
        hours_from_now: float = 24 * 10,
        total_amount: Decimal = Decimal("150.00"),
    ) -> str:
        trip_date, trip_time = trip_at(hours_from_now)
        created = booking_service.create_booking(
            actor or tourist,
            BookingRequest(
                vehicle_id=vehicle_id or seed.vehicle.id,
                trip_date=trip_date,
                trip_time=trip_time,
                pickup_location="Central Station",
                total_amount=total_amount,
                dropoff_location="Airport",
                itinerary=[{"stop": "Museum"}, {"stop": "Harbour"}],
            ),
        )
        return created.booking_id

    return _create


# ============================================================================
# HTTP
# ============================================================================


@pytest.fixture
def client(persistence, fake_gateway):
    from tripbooking.api.dependencies.database import get_persistence
    from tripbooking.api.dependencies.services import get_payment_gateway
    from tripbooking.main import app

    app.dependency_overrides[get_persistence] = lambda: persistence
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway
    # No context manager: the lifespan would connect the application engine
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def future_trip() -> Callable[[int], Dict[str, str]]:
    """Request-body date/time for a trip ``days`` from today."""

    def _trip(days: int = 10) -> Dict[str, str]:
        start = date.today() + timedelta(days=days)
        return {"trip_date": start.isoformat(), "trip_time": time(9, 0).isoformat()}

    return _trip
