"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import BOOKING_STATUSES


class ServiceResponse(BaseModel):
    """Schema for a catalog service"""

    id: str
    name: str
    description: Optional[str] = None
    price: float
    estimated_duration_minutes: int

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    detailer_id: str
    start_time: datetime
    end_time: datetime


class AvailableSlotsResponse(BaseModel):
    service_id: str
    date: str
    slots: list[SlotResponse]


class BookingCreate(BaseModel):
    """Schema for creating a booking. The customer is the authenticated user."""

    service_id: str
    booking_time: str  # ISO-8601, naive local
    location_address: str


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: str
    customer_id: str
    detailer_id: str
    service_id: str
    booking_time: datetime
    end_time: datetime
    duration_minutes: int
    location_address: str
    status: str
    final_price: Optional[float] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in BOOKING_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(BOOKING_STATUSES)}")
        return v


class DayAvailability(BaseModel):
    """One day of a detailer's weekly schedule"""

    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday ... 6 = Saturday
    time_slots: list[str] = Field(default_factory=list)  # "HH:MM-HH:MM"


class AvailabilityUpdate(BaseModel):
    availability: list[DayAvailability]


class WeeklyWindowResponse(BaseModel):
    id: int
    detailer_id: str
    day_of_week: int
    start_time: str
    end_time: str

    class Config:
        from_attributes = True
