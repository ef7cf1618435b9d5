"""Tests for open-slot resolution."""

from datetime import timedelta

import pytest

from app.domain.scheduling.errors import ServiceNotFound, ValidationError
from app.domain.scheduling.service import SchedulingService
from tests.conftest import (
    MONDAY,
    SUNDAY,
    TUESDAY,
    at,
    make_booking,
    make_detailer,
    make_service,
    make_user,
    make_window,
)


@pytest.fixture
def scheduling(db):
    return SchedulingService(db)


@pytest.fixture
def customer(db):
    return make_user(db)


def starts(slots, detailer_id=None):
    return [
        s.start.strftime("%H:%M")
        for s in slots
        if detailer_id is None or s.detailer_id == detailer_id
    ]


class TestFindAvailableSlots:
    def test_open_day(self, db, scheduling):
        """Mon 09:00-17:00, 30 minute service, nothing booked."""
        service = make_service(db, duration=30)
        detailer = make_detailer(db)
        make_window(db, detailer, day_of_week=1, start="09:00", end="17:00")

        slots = scheduling.find_available_slots(service.id, "2030-01-07")

        assert len(slots) == 16
        assert slots[0].start == at(MONDAY, "09:00")
        assert slots[0].end == at(MONDAY, "09:30")
        assert slots[-1].start == at(MONDAY, "16:30")
        assert all(s.detailer_id == detailer.id for s in slots)

    def test_booked_slot_is_removed(self, db, scheduling, customer):
        """A 10:00-10:30 booking removes 10:00 but leaves 09:30 and 10:30."""
        service = make_service(db, duration=30)
        detailer = make_detailer(db)
        make_window(db, detailer)
        make_booking(db, detailer, service, customer, at(MONDAY, "10:00"))

        open_starts = starts(scheduling.find_available_slots(service.id, MONDAY))

        assert "10:00" not in open_starts
        assert "09:30" in open_starts
        assert "10:30" in open_starts
        assert len(open_starts) == 15

    def test_no_slot_overlaps_a_booking(self, db, scheduling, customer):
        service = make_service(db, duration=90)
        detailer = make_detailer(db)
        make_window(db, detailer)
        booking = make_booking(db, detailer, service, customer, at(MONDAY, "11:00"), duration=45)

        for slot in scheduling.find_available_slots(service.id, MONDAY):
            assert slot.end <= booking.booking_time or slot.start >= booking.end_time

    def test_booking_from_previous_evening_blocks_early_slots(self, db, scheduling, customer):
        """A Sunday 23:00 booking running to 01:00 Monday blocks Monday's first hour."""
        service = make_service(db, duration=30)
        detailer = make_detailer(db)
        make_window(db, detailer, day_of_week=1, start="00:00", end="03:00")
        make_booking(db, detailer, service, customer, at(SUNDAY, "23:00"), duration=120)

        open_starts = starts(scheduling.find_available_slots(service.id, MONDAY))

        assert open_starts == ["01:00", "01:30", "02:00", "02:30"]

    def test_cancelled_booking_does_not_block(self, db, scheduling, customer):
        service = make_service(db, duration=30)
        detailer = make_detailer(db)
        make_window(db, detailer)
        make_booking(db, detailer, service, customer, at(MONDAY, "10:00"), status="cancelled")

        assert "10:00" in starts(scheduling.find_available_slots(service.id, MONDAY))

    @pytest.mark.parametrize("status", ["pending", "confirmed", "completed"])
    def test_blocking_statuses(self, db, scheduling, customer, status):
        service = make_service(db, duration=30)
        detailer = make_detailer(db)
        make_window(db, detailer)
        make_booking(db, detailer, service, customer, at(MONDAY, "10:00"), status=status)

        assert "10:00" not in starts(scheduling.find_available_slots(service.id, MONDAY))

    def test_booking_of_other_detailer_does_not_block(self, db, scheduling, customer):
        service = make_service(db, duration=30)
        busy = make_detailer(db, business_name="Busy")
        free = make_detailer(db, business_name="Free")
        make_window(db, busy)
        make_window(db, free)
        make_booking(db, busy, service, customer, at(MONDAY, "10:00"))

        slots = scheduling.find_available_slots(service.id, MONDAY)

        assert "10:00" not in starts(slots, busy.id)
        assert "10:00" in starts(slots, free.id)

    def test_roster_order_then_chronological(self, db, scheduling):
        """Windows are walked in insertion order; no dedup across detailers."""
        service = make_service(db, duration=60)
        second = make_detailer(db, business_name="Second")
        first = make_detailer(db, business_name="First")
        make_window(db, second, start="13:00", end="15:00")
        make_window(db, first, start="09:00", end="10:00")
        make_window(db, first, start="13:00", end="14:00")

        slots = scheduling.find_available_slots(service.id, MONDAY)

        assert [(s.detailer_id, s.start.strftime("%H:%M")) for s in slots] == [
            (second.id, "13:00"),
            (second.id, "13:30"),
            (second.id, "14:00"),
            (first.id, "09:00"),
            (first.id, "13:00"),
        ]

    def test_only_windows_for_that_weekday(self, db, scheduling):
        service = make_service(db)
        detailer = make_detailer(db)
        make_window(db, detailer, day_of_week=2)  # Tuesday

        assert scheduling.find_available_slots(service.id, MONDAY) == []
        assert len(scheduling.find_available_slots(service.id, TUESDAY)) == 16

    def test_no_windows_is_empty_not_error(self, db, scheduling):
        service = make_service(db)
        assert scheduling.find_available_slots(service.id, MONDAY) == []

    def test_inactive_detailer_is_never_offered(self, db, scheduling):
        service = make_service(db)
        detailer = make_detailer(db, is_active=False)
        make_window(db, detailer)

        assert scheduling.find_available_slots(service.id, MONDAY) == []

    def test_service_longer_than_window(self, db, scheduling):
        service = make_service(db, duration=240)
        detailer = make_detailer(db)
        make_window(db, detailer, start="09:00", end="11:00")

        assert scheduling.find_available_slots(service.id, MONDAY) == []

    def test_malformed_window_is_skipped(self, db, scheduling):
        service = make_service(db, duration=60)
        broken = make_detailer(db, business_name="Broken")
        working = make_detailer(db, business_name="Working")
        make_window(db, broken, start="9am", end="5pm")
        make_window(db, working, start="09:00", end="10:00")

        slots = scheduling.find_available_slots(service.id, MONDAY)

        assert [(s.detailer_id, s.start) for s in slots] == [(working.id, at(MONDAY, "09:00"))]

    def test_idempotent_without_writes(self, db, scheduling, customer):
        service = make_service(db, duration=45)
        detailer = make_detailer(db)
        make_window(db, detailer)
        make_booking(db, detailer, service, customer, at(MONDAY, "12:00"))

        first = scheduling.find_available_slots(service.id, MONDAY)
        second = scheduling.find_available_slots(service.id, MONDAY)

        assert first == second

    def test_custom_step(self, db):
        service = make_service(db, duration=60)
        detailer = make_detailer(db)
        make_window(db, detailer, start="09:00", end="11:00")

        slots = SchedulingService(db, step_minutes=60).find_available_slots(service.id, MONDAY)

        assert [s.end - s.start for s in slots] == [timedelta(minutes=60)] * 2


class TestFindAvailableSlotsErrors:
    def test_invalid_date(self, db, scheduling):
        service = make_service(db)
        with pytest.raises(ValidationError) as exc_info:
            scheduling.find_available_slots(service.id, "07/01/2030")
        assert exc_info.value.field == "date"

    def test_invalid_service_id(self, scheduling):
        with pytest.raises(ValidationError) as exc_info:
            scheduling.find_available_slots("not-a-uuid", "2030-01-07")
        assert exc_info.value.field == "service_id"

    def test_unknown_service(self, scheduling):
        with pytest.raises(ServiceNotFound):
            scheduling.find_available_slots("6f1c1d2e-3b4a-4c5d-8e9f-0a1b2c3d4e5f", MONDAY)

    def test_inactive_service(self, db, scheduling):
        service = make_service(db, is_active=False)
        with pytest.raises(ServiceNotFound):
            scheduling.find_available_slots(service.id, MONDAY)

    def test_service_without_duration(self, db, scheduling):
        service = make_service(db, duration=0)
        with pytest.raises(ValidationError):
            scheduling.find_available_slots(service.id, MONDAY)
