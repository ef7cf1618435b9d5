"""Tests for the commitment store and its overlap guard."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.domain.scheduling.errors import SlotConflict, StoreUnavailable
from app.domain.scheduling.repository import SchedulingRepository
from app.models import Booking
from tests.conftest import (
    ADDRESS,
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
def setup(db):
    service = make_service(db, duration=60)
    detailer = make_detailer(db)
    customer = make_user(db)
    return service, detailer, customer


def insert(db, service, detailer, customer, start, minutes=60, status="pending"):
    return SchedulingRepository.insert_commitment(
        db,
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


class TestOverlapGuard:
    def test_overlapping_insert_rejected(self, db, setup):
        service, detailer, customer = setup
        insert(db, service, detailer, customer, at(MONDAY, "10:00"))

        with pytest.raises(SlotConflict):
            insert(db, service, detailer, customer, at(MONDAY, "10:59"))

        assert db.query(Booking).count() == 1

    def test_contained_insert_rejected(self, db, setup):
        service, detailer, customer = setup
        insert(db, service, detailer, customer, at(MONDAY, "09:00"), minutes=240)

        with pytest.raises(SlotConflict):
            insert(db, service, detailer, customer, at(MONDAY, "10:00"), minutes=30)

    def test_touching_bookings_allowed(self, db, setup):
        service, detailer, customer = setup
        insert(db, service, detailer, customer, at(MONDAY, "10:00"))
        insert(db, service, detailer, customer, at(MONDAY, "11:00"))
        insert(db, service, detailer, customer, at(MONDAY, "09:00"))

        assert db.query(Booking).count() == 3

    def test_other_detailer_may_overlap(self, db, setup):
        service, detailer, customer = setup
        insert(db, service, detailer, customer, at(MONDAY, "10:00"))
        insert(db, service, make_detailer(db), customer, at(MONDAY, "10:00"))

        assert db.query(Booking).count() == 2

    def test_cancelled_bookings_never_collide(self, db, setup):
        service, detailer, customer = setup
        insert(db, service, detailer, customer, at(MONDAY, "10:00"), status="cancelled")
        insert(db, service, detailer, customer, at(MONDAY, "10:00"))
        insert(db, service, detailer, customer, at(MONDAY, "10:30"), status="cancelled")

        assert db.query(Booking).count() == 3

    def test_session_usable_after_rejection(self, db, setup):
        service, detailer, customer = setup
        insert(db, service, detailer, customer, at(MONDAY, "10:00"))
        with pytest.raises(SlotConflict):
            insert(db, service, detailer, customer, at(MONDAY, "10:30"))

        booking = insert(db, service, detailer, customer, at(MONDAY, "12:00"))

        assert booking.id


class TestQueryCommitments:
    def test_day_range_includes_overnight_booking(self, db, setup):
        service, detailer, customer = setup
        overnight = make_booking(db, detailer, service, customer, at(SUNDAY, "23:30"))
        monday = make_booking(db, detailer, service, customer, at(MONDAY, "10:00"))
        make_booking(db, detailer, service, customer, at(TUESDAY, "00:00"))

        found = SchedulingRepository.query_commitments(
            db, date_range=(at(MONDAY, "00:00"), at(TUESDAY, "00:00"))
        )

        assert [b.id for b in found] == [overnight.id, monday.id]

    def test_excludes_cancelled(self, db, setup):
        service, detailer, customer = setup
        make_booking(db, detailer, service, customer, at(MONDAY, "10:00"), status="cancelled")

        assert SchedulingRepository.query_commitments(db) == []

    def test_filters_by_detailer(self, db, setup):
        service, detailer, customer = setup
        other = make_detailer(db)
        mine = make_booking(db, detailer, service, customer, at(MONDAY, "10:00"))
        make_booking(db, other, service, customer, at(MONDAY, "10:00"))

        found = SchedulingRepository.query_commitments(db, detailer_id=detailer.id)

        assert [b.id for b in found] == [mine.id]


class TestWeeklyWindows:
    def test_only_active_detailers_for_day(self, db):
        active = make_detailer(db)
        inactive = make_detailer(db, is_active=False)
        kept = make_window(db, active, day_of_week=1)
        make_window(db, active, day_of_week=2)
        make_window(db, inactive, day_of_week=1)

        windows = SchedulingRepository.query_weekly_windows(db, 1)

        assert [w.id for w in windows] == [kept.id]

    def test_duplicates_are_kept(self, db):
        detailer = make_detailer(db)
        make_window(db, detailer)
        make_window(db, detailer)

        assert len(SchedulingRepository.query_weekly_windows(db, 1)) == 2


class TestStoreFailures:
    def test_read_failure_is_store_unavailable(self, db, monkeypatch):
        def failing_query(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection reset"))

        monkeypatch.setattr(db, "query", failing_query)

        with pytest.raises(StoreUnavailable):
            SchedulingRepository.query_weekly_windows(db, 1)
        with pytest.raises(StoreUnavailable):
            SchedulingRepository.query_commitments(db)


class TestServiceCatalog:
    def test_active_services_ordered_by_price(self, db):
        premium = make_service(db, price=200.0, name="Full Detail")
        basic = make_service(db, price=30.0, name="Rinse")
        make_service(db, price=10.0, name="Retired", is_active=False)

        services = SchedulingRepository.list_active_services(db)

        assert [s.id for s in services] == [basic.id, premium.id]
