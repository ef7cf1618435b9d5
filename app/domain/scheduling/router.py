"""Scheduling router - FastAPI endpoints for availability and bookings"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import RequestContext, get_request_context, require_role
from ...config import SLOTS_RATE_LIMIT, SLOTS_RATE_WINDOW_SECONDS
from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .calendar import parse_calendar_date
from .errors import ValidationError
from .schemas import (
    AvailabilityUpdate,
    AvailableSlotsResponse,
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
    ServiceResponse,
    SlotResponse,
    WeeklyWindowResponse,
)
from .service import SchedulingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scheduling", tags=["Scheduling"])
admin_router = APIRouter(prefix="/admin", tags=["Admin"])

slots_rate_limiter = create_rate_limiter(
    limit=SLOTS_RATE_LIMIT, window_seconds=SLOTS_RATE_WINDOW_SECONDS, key_prefix="available_slots"
)


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


# ============================================================================
# PUBLIC AVAILABILITY
# ============================================================================


@router.get("/services", response_model=list[ServiceResponse])
async def list_services(service: SchedulingService = Depends(get_scheduling_service)):
    """Active services, cheapest first"""
    return service.list_services()


@router.get("/available-slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    service_id: str = Query(...),
    date: str = Query(..., description="YYYY-MM-DD"),
    _: None = Depends(slots_rate_limiter),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """
    Bookable slots for a service on a date.

    An empty ``slots`` list means every detailer is booked or off that day;
    failures come back as typed errors (see ``code`` in the error body).
    """
    try:
        target_date = parse_calendar_date(date)
    except ValueError as e:
        raise ValidationError(str(e), field="date") from e

    slots = service.find_available_slots(service_id, target_date)
    return AvailableSlotsResponse(
        service_id=service_id,
        date=target_date.isoformat(),
        slots=[
            SlotResponse(detailer_id=s.detailer_id, start_time=s.start, end_time=s.end)
            for s in slots
        ],
    )


# ============================================================================
# CUSTOMER BOOKINGS
# ============================================================================


@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Book the requested start time; a detailer is assigned automatically"""
    logger.info(f"📥 Booking request from user {ctx.user.id} for {data.booking_time}")
    return service.create_booking(
        data.service_id, data.booking_time, ctx.user.id, data.location_address
    )


@router.get("/bookings/me", response_model=list[BookingResponse])
async def list_my_bookings(
    ctx: RequestContext = Depends(get_request_context),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.list_customer_bookings(ctx.user)


# ============================================================================
# DETAILER SELF-SERVICE
# ============================================================================


@router.put("/detailers/me/availability", response_model=list[WeeklyWindowResponse])
async def update_my_availability(
    data: AvailabilityUpdate,
    ctx: RequestContext = Depends(require_role("detailer")),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Replace the weekly windows for each day in the payload"""
    return service.update_weekly_availability(
        ctx.user, [day.model_dump() for day in data.availability]
    )


@router.get("/detailers/me/bookings", response_model=list[BookingResponse])
async def list_assigned_bookings(
    ctx: RequestContext = Depends(require_role("detailer")),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.list_detailer_bookings(ctx.user)


# ============================================================================
# OPERATOR WORKFLOW
# ============================================================================


@admin_router.patch("/bookings/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: str,
    data: BookingStatusUpdate,
    _: RequestContext = Depends(require_role("admin")),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.update_booking_status(booking_id, data.status)
