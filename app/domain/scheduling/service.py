"""Scheduling service - Availability resolution and booking assignment"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Union

from sqlalchemy.orm import Session

from ...config import MAX_ADDRESS_LENGTH, MIN_ADDRESS_LENGTH, SLOT_STEP_MINUTES
from ...models import BOOKING_STATUSES, Booking, Detailer, DetailerAvailability, Service, User
from ...shared.validators import clean_address, validate_time_range, validate_uuid
from .calendar import (
    day_bounds,
    day_of_week,
    enumerate_slots,
    parse_calendar_date,
    parse_clock_time,
    parse_local_instant,
)
from .conflicts import Slot, TimeRange, has_conflict, overlaps
from .errors import (
    BookingNotFound,
    DetailerNotFound,
    NoAvailability,
    ServiceNotFound,
    SlotConflict,
    ValidationError,
)
from .repository import SchedulingRepository

logger = logging.getLogger(__name__)


class SchedulingService:
    """Service layer for availability and booking business logic"""

    def __init__(self, db: Session, step_minutes: int = SLOT_STEP_MINUTES):
        self.db = db
        self.repo = SchedulingRepository()
        self.step_minutes = step_minutes

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_services(self) -> list[Service]:
        return self.repo.list_active_services(self.db)

    def get_active_service(self, service_id: str) -> Service:
        if not validate_uuid(service_id):
            raise ValidationError("Invalid service ID", field="service_id")

        service = self.repo.get_service(self.db, service_id)
        if not service or not service.is_active:
            raise ServiceNotFound(service_id)
        if not service.estimated_duration_minutes or service.estimated_duration_minutes <= 0:
            logger.error(f"❌ Service {service_id} has no usable duration")
            raise ValidationError("Service has no valid duration", field="service_id")
        return service

    # ------------------------------------------------------------------
    # Availability resolution
    # ------------------------------------------------------------------

    def find_available_slots(self, service_id: str, target_date: Union[str, date]) -> list[Slot]:
        """
        Open slots for a service on a date, across every active detailer.

        Results follow roster order, then chronological order within each
        weekly window. The same start time may appear once per detailer.
        An empty list means nobody is free; it is not an error.
        """
        if isinstance(target_date, str):
            try:
                target_date = parse_calendar_date(target_date)
            except ValueError as e:
                raise ValidationError(str(e), field="date") from e

        service = self.get_active_service(service_id)
        duration = service.estimated_duration_minutes

        windows = self.repo.query_weekly_windows(self.db, day_of_week(target_date))
        if not windows:
            logger.info(f"📭 No weekly windows on {target_date} for service {service_id}")
            return []

        # Overlap query catches bookings that started the previous evening
        commitments = self.repo.query_commitments(self.db, date_range=day_bounds(target_date))
        busy: dict[str, list[TimeRange]] = defaultdict(list)
        for booking in commitments:
            busy[booking.detailer_id].append(TimeRange(booking.booking_time, booking.end_time))

        slots: list[Slot] = []
        for window in windows:
            try:
                candidates = list(
                    enumerate_slots(window, target_date, duration, self.step_minutes)
                )
            except ValueError as e:
                logger.error(f"❌ Skipping malformed weekly window {window.id}: {e}")
                continue

            detailer_busy = busy.get(window.detailer_id, [])
            for start, end in candidates:
                slot = Slot(detailer_id=window.detailer_id, start=start, end=end)
                if not has_conflict(slot, detailer_busy):
                    slots.append(slot)

        logger.info(
            f"📅 {len(slots)} open slots for service {service_id} on {target_date} "
            f"({len(windows)} windows, {len(commitments)} bookings)"
        )
        return slots

    # ------------------------------------------------------------------
    # Booking assignment
    # ------------------------------------------------------------------

    def create_booking(
        self,
        service_id: str,
        requested_instant: Union[str, datetime],
        customer_id: str,
        location_address: str,
    ) -> Booking:
        """
        Assign a detailer to the requested start time and record a pending booking.

        The first detailer (roster order) whose weekly window covers the start
        time and who has no overlapping booking is chosen. The insert itself is
        guarded by the store, so a concurrent booking that wins the race makes
        this call fail with SlotConflict rather than double-book.
        """
        if isinstance(requested_instant, str):
            try:
                requested_instant = parse_local_instant(requested_instant)
            except ValueError as e:
                raise ValidationError(str(e), field="booking_time") from e

        try:
            address = clean_address(location_address, MIN_ADDRESS_LENGTH, MAX_ADDRESS_LENGTH)
        except ValueError as e:
            raise ValidationError(str(e), field="location_address") from e

        service = self.get_active_service(service_id)
        candidate = TimeRange(
            requested_instant,
            requested_instant + timedelta(minutes=service.estimated_duration_minutes),
        )

        covering = self._covering_detailers(requested_instant)
        if not covering:
            logger.info(f"📭 No detailer works at {requested_instant} for service {service_id}")
            raise NoAvailability("No detailers available for this timeslot.")

        # Re-validate against bookings that exist right now
        commitments = self.repo.query_commitments(
            self.db, date_range=(candidate.start, candidate.end)
        )
        busy_detailers = {
            booking.detailer_id
            for booking in commitments
            if overlaps(candidate, TimeRange(booking.booking_time, booking.end_time))
        }

        detailer_id = next((d for d in covering if d not in busy_detailers), None)
        if detailer_id is None:
            logger.warning(
                f"⚠️ All {len(covering)} covering detailers busy at {requested_instant}"
            )
            raise SlotConflict("This time slot is no longer available. Please choose another slot.")

        booking = self.repo.insert_commitment(
            self.db,
            customer_id=customer_id,
            detailer_id=detailer_id,
            service_id=service.id,
            booking_time=candidate.start,
            end_time=candidate.end,
            duration_minutes=service.estimated_duration_minutes,
            location_address=address,
            status="pending",
            final_price=service.price,
        )
        logger.info(
            f"✅ Booking {booking.id} created: detailer {detailer_id}, "
            f"{candidate.start.isoformat()} - {candidate.end.isoformat()}"
        )
        return booking

    def _covering_detailers(self, instant: datetime) -> list[str]:
        """Detailers (roster order, each once) with a window where start <= time-of-day <= end"""
        time_of_day = instant.time()
        detailer_ids: list[str] = []
        for window in self.repo.query_weekly_windows(self.db, day_of_week(instant.date())):
            if window.detailer_id in detailer_ids:
                continue
            if self._window_covers(window, time_of_day):
                detailer_ids.append(window.detailer_id)
        return detailer_ids

    @staticmethod
    def _window_covers(window: DetailerAvailability, time_of_day) -> bool:
        try:
            start = parse_clock_time(window.start_time)
            end = parse_clock_time(window.end_time)
        except ValueError as e:
            logger.error(f"❌ Skipping malformed weekly window {window.id}: {e}")
            return False
        return start <= time_of_day <= end

    # ------------------------------------------------------------------
    # Booking records
    # ------------------------------------------------------------------

    def list_customer_bookings(self, user: User) -> list[Booking]:
        return self.repo.list_customer_bookings(self.db, user.id)

    def list_detailer_bookings(self, user: User) -> list[Booking]:
        detailer = self._detailer_for(user)
        return self.repo.list_detailer_bookings(self.db, detailer.id)

    def update_booking_status(self, booking_id: str, status: str) -> Booking:
        """Operator status transition; bookings are never deleted"""
        if status not in BOOKING_STATUSES:
            raise ValidationError(
                f"Status must be one of: {', '.join(BOOKING_STATUSES)}", field="status"
            )
        if not validate_uuid(booking_id):
            raise ValidationError("Invalid booking ID", field="booking_id")

        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise BookingNotFound(booking_id)

        previous = booking.status
        booking = self.repo.update_booking_status(self.db, booking, status)
        logger.info(f"🔄 Booking {booking_id} status {previous} -> {status}")
        return booking

    # ------------------------------------------------------------------
    # Weekly availability
    # ------------------------------------------------------------------

    def update_weekly_availability(
        self, user: User, availability: list[dict]
    ) -> list[DetailerAvailability]:
        """
        Replace the detailer's windows for every day listed in ``availability``.

        Each entry is {"day_of_week": 0..6, "time_slots": ["HH:MM-HH:MM", ...]};
        a day with no time slots clears that day.
        """
        detailer = self._detailer_for(user)

        windows_by_day: dict[int, list[tuple[str, str]]] = {}
        for entry in availability:
            day = entry.get("day_of_week")
            if not isinstance(day, int) or not 0 <= day <= 6:
                raise ValidationError("day_of_week must be between 0 and 6", field="day_of_week")

            ranges = windows_by_day.setdefault(day, [])
            for raw in entry.get("time_slots") or []:
                try:
                    ranges.append(validate_time_range(raw))
                except ValueError as e:
                    raise ValidationError(str(e), field="time_slots") from e

        windows = self.repo.replace_weekly_windows(self.db, detailer.id, windows_by_day)
        logger.info(
            f"🗓️ Detailer {detailer.id} availability updated for days {sorted(windows_by_day)}"
        )
        return windows

    def _detailer_for(self, user: User) -> Detailer:
        detailer = self.repo.get_detailer_for_user(self.db, user.id)
        if not detailer:
            raise DetailerNotFound(f"No detailer profile for user {user.id}")
        return detailer

