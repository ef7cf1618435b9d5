"""Shared test fixtures and helpers."""

import os
import uuid

# Keep the application engine off the local database file
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth import RequestContext, get_request_context
from app.database import Base, get_db
from app.domain.scheduling.router import slots_rate_limiter
from app.main import app
from app.models import Booking, Detailer, DetailerAvailability, Service, User

# 2030-01-07 is a Monday (day_of_week 1); 2030-01-06 the Sunday before it
MONDAY = date(2030, 1, 7)
SUNDAY = date(2030, 1, 6)
TUESDAY = date(2030, 1, 8)

ADDRESS = "42 Harbour Road, Springfield"


def at(day: date, clock: str) -> datetime:
    """Naive local datetime for a date and an "HH:MM" clock time."""
    return datetime.combine(day, datetime.strptime(clock, "%H:%M").time())


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """TestClient bound to the test session, with the slot rate limiter disabled."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[slots_rate_limiter] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Authenticate subsequent client requests as the given user."""

    def _login(user: User):
        ctx = RequestContext(user=user, role=user.role)
        app.dependency_overrides[get_request_context] = lambda: ctx
        return ctx

    return _login


def make_user(db, role: str = "customer", email: Optional[str] = None) -> User:
    user = User(
        firebase_uid=f"uid-{uuid.uuid4().hex}",
        email=email or f"{role}-{uuid.uuid4().hex[:8]}@example.com",
        full_name=f"Test {role.title()}",
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_service(
    db,
    duration: int = 30,
    price: float = 45.0,
    name: str = "Exterior Wash",
    is_active: bool = True,
) -> Service:
    service = Service(
        name=name,
        description=f"{name} ({duration} min)",
        price=price,
        estimated_duration_minutes=duration,
        is_active=is_active,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def make_detailer(
    db,
    business_name: str = "Shine Mobile Detailing",
    is_active: bool = True,
    user: Optional[User] = None,
) -> Detailer:
    detailer = Detailer(
        business_name=business_name,
        is_active=is_active,
        user_id=user.id if user else None,
    )
    db.add(detailer)
    db.commit()
    db.refresh(detailer)
    return detailer


def make_window(
    db,
    detailer: Detailer,
    day_of_week: int = 1,
    start: str = "09:00",
    end: str = "17:00",
) -> DetailerAvailability:
    window = DetailerAvailability(
        detailer_id=detailer.id, day_of_week=day_of_week, start_time=start, end_time=end
    )
    db.add(window)
    db.commit()
    db.refresh(window)
    return window


def make_booking(
    db,
    detailer: Detailer,
    service: Service,
    customer: User,
    start: datetime,
    duration: Optional[int] = None,
    status: str = "confirmed",
) -> Booking:
    """Write a booking directly, bypassing assignment."""
    minutes = duration or service.estimated_duration_minutes
    booking = Booking(
        customer_id=customer.id,
        detailer_id=detailer.id,
        service_id=service.id,
        booking_time=start,
        end_time=start + timedelta(minutes=minutes),
        duration_minutes=minutes,
        location_address=ADDRESS,
        status=status,
        final_price=service.price,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking
