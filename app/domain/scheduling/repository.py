"""Scheduling repository - Database operations for services, weekly windows and bookings"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import (
    BLOCKING_STATUSES,
    OVERLAP_CONSTRAINT_NAME,
    Booking,
    Detailer,
    DetailerAvailability,
    Service,
)
from .errors import SlotConflict, StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)


@contextmanager
def store_call(db: Session, action: str):
    """Translate SQLAlchemy failures into scheduling errors"""
    try:
        yield
    except IntegrityError as e:
        db.rollback()
        if OVERLAP_CONSTRAINT_NAME in str(e.orig):
            logger.warning(f"⚠️ Overlap guard rejected write while {action}")
            raise SlotConflict(
                "This time slot is no longer available. Please choose another slot."
            ) from e
        logger.error(f"❌ Integrity error while {action}: {e.orig}")
        raise ValidationError("Booking references a record that does not exist") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Store failure while {action}: {e}")
        raise StoreUnavailable("Scheduling store is temporarily unavailable") from e


class SchedulingRepository:
    """Repository for scheduling database operations"""

    # Service catalog (read-only to scheduling)
    @staticmethod
    def get_service(db: Session, service_id: str) -> Optional[Service]:
        with store_call(db, "loading service"):
            return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def list_active_services(db: Session) -> list[Service]:
        with store_call(db, "listing services"):
            return (
                db.query(Service)
                .filter(Service.is_active.is_(True))
                .order_by(Service.price, Service.name)
                .all()
            )

    # Weekly windows
    @staticmethod
    def query_weekly_windows(db: Session, day_of_week: int) -> list[DetailerAvailability]:
        """All windows for a day of week across active detailers, in roster order"""
        with store_call(db, "loading weekly windows"):
            return (
                db.query(DetailerAvailability)
                .join(Detailer, Detailer.id == DetailerAvailability.detailer_id)
                .filter(
                    DetailerAvailability.day_of_week == day_of_week,
                    Detailer.is_active.is_(True),
                )
                .order_by(DetailerAvailability.id)
                .all()
            )

    @staticmethod
    def replace_weekly_windows(
        db: Session, detailer_id: str, windows_by_day: dict[int, list[tuple[str, str]]]
    ) -> list[DetailerAvailability]:
        """Replace a detailer's windows for the listed days in one transaction"""
        with store_call(db, "replacing weekly windows"):
            if windows_by_day:
                db.query(DetailerAvailability).filter(
                    DetailerAvailability.detailer_id == detailer_id,
                    DetailerAvailability.day_of_week.in_(list(windows_by_day)),
                ).delete(synchronize_session=False)

            for day, ranges in windows_by_day.items():
                for start_time, end_time in ranges:
                    db.add(
                        DetailerAvailability(
                            detailer_id=detailer_id,
                            day_of_week=day,
                            start_time=start_time,
                            end_time=end_time,
                        )
                    )
            db.commit()
            return (
                db.query(DetailerAvailability)
                .filter(DetailerAvailability.detailer_id == detailer_id)
                .order_by(DetailerAvailability.day_of_week, DetailerAvailability.id)
                .all()
            )

    @staticmethod
    def get_detailer_for_user(db: Session, user_id: str) -> Optional[Detailer]:
        with store_call(db, "loading detailer"):
            return db.query(Detailer).filter(Detailer.user_id == user_id).first()

    # Bookings (commitments)
    @staticmethod
    def query_commitments(
        db: Session,
        detailer_id: Optional[str] = None,
        date_range: Optional[tuple[datetime, datetime]] = None,
    ) -> list[Booking]:
        """
        Blocking bookings, optionally for one detailer and/or overlapping a
        half-open [start, end) range. Cancelled bookings never block.
        """
        with store_call(db, "loading bookings"):
            query = db.query(Booking).filter(Booking.status.in_(BLOCKING_STATUSES))

            if detailer_id:
                query = query.filter(Booking.detailer_id == detailer_id)

            if date_range:
                range_start, range_end = date_range
                query = query.filter(
                    Booking.booking_time < range_end, Booking.end_time > range_start
                )

            return query.order_by(Booking.detailer_id, Booking.booking_time).all()

    @staticmethod
    def insert_commitment(db: Session, **booking_data) -> Booking:
        """Insert a booking. The store's overlap guard is the final word on conflicts."""
        with store_call(db, "inserting booking"):
            booking = Booking(**booking_data)
            db.add(booking)
            db.commit()
            db.refresh(booking)
            return booking

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        with store_call(db, "loading booking"):
            return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def update_booking_status(db: Session, booking: Booking, status: str) -> Booking:
        with store_call(db, "updating booking status"):
            booking.status = status
            db.commit()
            db.refresh(booking)
            return booking

    @staticmethod
    def list_customer_bookings(db: Session, customer_id: str) -> list[Booking]:
        with store_call(db, "listing customer bookings"):
            return (
                db.query(Booking)
                .filter(Booking.customer_id == customer_id)
                .order_by(Booking.booking_time.desc())
                .all()
            )

    @staticmethod
    def list_detailer_bookings(db: Session, detailer_id: str) -> list[Booking]:
        with store_call(db, "listing detailer bookings"):
            return (
                db.query(Booking)
                .filter(Booking.detailer_id == detailer_id)
                .order_by(Booking.booking_time)
                .all()
            )
