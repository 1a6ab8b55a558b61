# backend/salon/routers/capacity.py
"""
Capacity API endpoints.

POST /capacity/check     - read-only admission pre-check
GET  /capacity/slots     - bookable start times for a date and duration
GET  /capacity/dashboard - occupancy view for a date (no side effects)
"""

from datetime import date
from fastapi import APIRouter, Depends, Query

from ..schemas.appointments import AppointmentRead
from ..schemas.capacity import (
    CapacityCheckRequest,
    CapacityCheckResponse,
    CapacityFiguresRead,
    CapacityInfo,
    CapacitySettingsRead,
    CapacityStatusRead,
    DashboardResponse,
    PeakHour,
    SlotOccupancyRead,
    SlotRead,
    SlotsResponse,
)
from ..services.capacity import CapacityEngine, get_capacity_engine


router = APIRouter(prefix="/capacity", tags=["capacity"])


@router.post("/check", response_model=CapacityCheckResponse)
def check_capacity(
    data: CapacityCheckRequest,
    engine: CapacityEngine = Depends(get_capacity_engine),
):
    """Check whether a time range could be booked right now."""
    check = engine.admission.check_capacity(data.start_time, data.end_time)

    capacity_info = None
    if check.daily is not None and check.concurrent is not None:
        capacity_info = CapacityInfo(
            daily=_figures(check.daily),
            concurrent=_figures(check.concurrent),
        )

    return CapacityCheckResponse(
        admissible=check.admissible,
        reason=check.rejection.kind.value if check.rejection else None,
        message=check.rejection.message if check.rejection else None,
        capacity_info=capacity_info,
        time_slot={"start": data.start_time, "end": data.end_time},
    )


@router.get("/slots", response_model=SlotsResponse)
def get_available_slots(
    target_date: date = Query(..., alias="date"),
    duration: int = Query(60, gt=0, description="Service duration in minutes"),
    engine: CapacityEngine = Depends(get_capacity_engine),
):
    """Get bookable start times for a service duration on a date."""
    slots = list(engine.slots.available_slots(target_date, duration))
    max_stations = slots[0].max_stations if slots else engine.slots.max_stations()

    return SlotsResponse(
        date=target_date,
        duration=duration,
        max_stations=max_stations,
        total_available_slots=len(slots),
        available_slots=[
            SlotRead(
                time=slot.start.strftime("%H:%M"),
                start_time=slot.start,
                end_time=slot.end,
                available_stations=slot.available_stations,
                max_stations=slot.max_stations,
                capacity_percentage=slot.capacity_percentage,
                status=slot.status,
            )
            for slot in slots
        ],
    )


@router.get("/dashboard", response_model=DashboardResponse)
def get_capacity_dashboard(
    target_date: date | None = Query(None, alias="date"),
    engine: CapacityEngine = Depends(get_capacity_engine),
):
    """Get capacity dashboard for a date (defaults to today)."""
    dashboard = engine.dashboard(target_date or date.today())
    work_start, work_end = dashboard.working_hours

    return DashboardResponse(
        date=dashboard.date,
        capacity_settings=CapacitySettingsRead(
            max_concurrent_appointments=dashboard.max_concurrent,
            max_daily_appointments=dashboard.max_daily,
            working_hours={"start": work_start, "end": work_end},
        ),
        current_status=CapacityStatusRead(
            total_appointments_today=dashboard.current_daily_count,
            current_concurrent=dashboard.current_concurrent,
            available_daily_slots=dashboard.available_daily_slots,
            daily_capacity_percentage=dashboard.daily_capacity_percentage,
            status=dashboard.status,
        ),
        per_slot_occupancy=[
            SlotOccupancyRead(
                time=cell.start.strftime("%H:%M"),
                start_time=cell.start,
                end_time=cell.end,
                occupied=cell.occupied,
                available=cell.available,
                capacity_percentage=cell.capacity_percentage,
            )
            for cell in dashboard.per_slot_occupancy
        ],
        appointments=[AppointmentRead.from_record(a) for a in dashboard.appointments],
        peak_hours=[PeakHour(hour=hour, appointments=count) for hour, count in dashboard.peak_hours],
        recommendations=dashboard.recommendations,
    )


def _figures(figures) -> CapacityFiguresRead:
    return CapacityFiguresRead(
        current=figures.current,
        max=figures.max,
        available=figures.available,
        percentage=figures.percentage,
    )
