"""
Pydantic schemas for capacity API.
"""

from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from .appointments import AppointmentRead


class CapacityCheckRequest(BaseModel):
    start_time: datetime
    end_time: datetime


class CapacityFiguresRead(BaseModel):
    current: int
    max: int
    available: int
    percentage: float

    model_config = {"from_attributes": True}


class CapacityInfo(BaseModel):
    daily: CapacityFiguresRead
    concurrent: CapacityFiguresRead


class CapacityCheckResponse(BaseModel):
    """Read-only pre-check; the booking itself decides."""
    admissible: bool
    reason: Optional[str] = Field(default=None, description="Error kind when not admissible")
    message: Optional[str] = None
    capacity_info: Optional[CapacityInfo] = None
    time_slot: dict[str, datetime]


class SlotRead(BaseModel):
    """A bookable start time."""
    time: str  # "HH:MM"
    start_time: datetime
    end_time: datetime
    available_stations: int
    max_stations: int
    capacity_percentage: float
    status: str


class SlotsResponse(BaseModel):
    date: date
    duration: int
    max_stations: int
    total_available_slots: int
    available_slots: list[SlotRead]


class SlotOccupancyRead(BaseModel):
    time: str  # "HH:MM"
    start_time: datetime
    end_time: datetime
    occupied: int
    available: int
    capacity_percentage: float


class PeakHour(BaseModel):
    hour: str
    appointments: int


class CapacitySettingsRead(BaseModel):
    max_concurrent_appointments: int
    max_daily_appointments: int
    working_hours: dict[str, str]


class CapacityStatusRead(BaseModel):
    total_appointments_today: int
    current_concurrent: int
    available_daily_slots: int
    daily_capacity_percentage: float
    status: str = Field(description="low / moderate / high / critical")


class DashboardResponse(BaseModel):
    date: date
    capacity_settings: CapacitySettingsRead
    current_status: CapacityStatusRead
    per_slot_occupancy: list[SlotOccupancyRead]
    appointments: list[AppointmentRead]
    peak_hours: list[PeakHour]
    recommendations: list[dict[str, Any]]
