import uuid

from sqlalchemy import (
    DDL,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
# Statuses that hold a detailer's time; cancelled bookings free it
BLOCKING_STATUSES = ("pending", "confirmed", "completed")
USER_ROLES = ("customer", "detailer", "admin")


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    role = Column(String(20), default="customer", nullable=False)  # customer, detailer, admin
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    detailer = relationship("Detailer", back_populates="user", uselist=False)
    bookings = relationship("Booking", back_populates="customer")


class Detailer(Base):
    __tablename__ = "detailers"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=True)
    business_name = Column(String(255), nullable=True)
    service_area_description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="detailer")
    availability = relationship(
        "DetailerAvailability", back_populates="detailer", cascade="all, delete-orphan"
    )
    bookings = relationship("Booking", back_populates="detailer")


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    estimated_duration_minutes = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    bookings = relationship("Booking", back_populates="service")


class DetailerAvailability(Base):
    """A recurring weekly working window for one detailer"""

    __tablename__ = "detailer_availability"

    # Integer key doubles as the roster enumeration order
    id = Column(Integer, primary_key=True, index=True)
    detailer_id = Column(String(36), ForeignKey("detailers.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False, index=True)  # 0 = Sunday ... 6 = Saturday
    start_time = Column(String(10), nullable=False)  # HH:MM format
    end_time = Column(String(10), nullable=False)  # HH:MM format
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    detailer = relationship("Detailer", back_populates="availability")


class Booking(Base):
    """A dated commitment of a detailer's time to one customer's service"""

    __tablename__ = "bookings"
    __table_args__ = (Index("ix_bookings_detailer_time", "detailer_id", "booking_time"),)

    id = Column(String(36), primary_key=True, default=generate_public_id)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    detailer_id = Column(String(36), ForeignKey("detailers.id"), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    booking_time = Column(DateTime, nullable=False)  # naive local start
    end_time = Column(DateTime, nullable=False)  # booking_time + duration_minutes
    duration_minutes = Column(Integer, nullable=False)  # service duration at creation
    location_address = Column(String(500), nullable=False)
    status = Column(String(20), default="pending", nullable=False)
    final_price = Column(Float, nullable=True)  # service price snapshot
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User", back_populates="bookings")
    detailer = relationship("Detailer", back_populates="bookings")
    service = relationship("Service", back_populates="bookings")


# ============================================================================
# STORAGE-LEVEL OVERLAP GUARD
# No two blocking bookings of one detailer may share an instant.
# ============================================================================

OVERLAP_CONSTRAINT_NAME = "bookings_no_overlap"

POSTGRES_OVERLAP_STATEMENTS = (
    "CREATE EXTENSION IF NOT EXISTS btree_gist",
    f"""
    ALTER TABLE bookings
    ADD CONSTRAINT {OVERLAP_CONSTRAINT_NAME}
    EXCLUDE USING gist (
        detailer_id WITH =,
        tsrange(booking_time, end_time) WITH &&
    ) WHERE (status <> 'cancelled')
    """,
)

_SQLITE_OVERLAP_CHECK = f"""
    SELECT RAISE(ABORT, '{OVERLAP_CONSTRAINT_NAME}')
    WHERE EXISTS (
        SELECT 1 FROM bookings
        WHERE detailer_id = NEW.detailer_id
          AND id <> NEW.id
          AND status <> 'cancelled'
          AND booking_time < NEW.end_time
          AND end_time > NEW.booking_time
    );
"""

SQLITE_OVERLAP_STATEMENTS = (
    f"""
    CREATE TRIGGER IF NOT EXISTS {OVERLAP_CONSTRAINT_NAME}_insert
    BEFORE INSERT ON bookings
    WHEN NEW.status <> 'cancelled'
    BEGIN
    {_SQLITE_OVERLAP_CHECK}
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS {OVERLAP_CONSTRAINT_NAME}_update
    BEFORE UPDATE OF status, booking_time, end_time, detailer_id ON bookings
    WHEN NEW.status <> 'cancelled'
    BEGIN
    {_SQLITE_OVERLAP_CHECK}
    END
    """,
)

event.listen(
    Booking.__table__,
    "before_create",
    DDL(POSTGRES_OVERLAP_STATEMENTS[0]).execute_if(dialect="postgresql"),
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(POSTGRES_OVERLAP_STATEMENTS[1]).execute_if(dialect="postgresql"),
)
for _statement in SQLITE_OVERLAP_STATEMENTS:
    event.listen(Booking.__table__, "after_create", DDL(_statement).execute_if(dialect="sqlite"))
