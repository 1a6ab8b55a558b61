"""
Capacity dashboard: read-only occupancy view for one date.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from .config import load_capacity_settings
from .ledger import AppointmentRecord, list_for_day
from .overlap import count_overlapping
from .status import ACTIVE_STATUSES

BEST_SLOT_THRESHOLD = 50  # percent occupied


@dataclass(frozen=True)
class SlotOccupancy:
    start: datetime
    end: datetime
    occupied: int
    available: int
    capacity_percentage: float


@dataclass(frozen=True)
class CapacityDashboard:
    date: date
    max_concurrent: int
    max_daily: int
    working_hours: tuple[str, str]
    current_daily_count: int
    current_concurrent: int
    per_slot_occupancy: list[SlotOccupancy]
    appointments: list[AppointmentRecord]
    peak_hours: list[tuple[str, int]] = field(default_factory=list)
    recommendations: list[dict] = field(default_factory=list)

    @property
    def available_daily_slots(self) -> int:
        return max(0, self.max_daily - self.current_daily_count)

    @property
    def daily_capacity_percentage(self) -> float:
        return round(self.current_daily_count / self.max_daily * 100, 1)

    @property
    def status(self) -> str:
        return capacity_status(self.daily_capacity_percentage)


def capacity_status(percentage: float) -> str:
    if percentage >= 90:
        return "critical"
    if percentage >= 80:
        return "high"
    if percentage >= 60:
        return "moderate"
    return "low"


def build_dashboard(
    session_factory: Callable[[], Session],
    settings_store,
    target_date: date,
    now: datetime | None = None,
) -> CapacityDashboard:
    settings = load_capacity_settings(settings_store)
    now = now or datetime.now()

    with session_factory() as db:
        rows = list_for_day(db, target_date, ACTIVE_STATUSES)
        appointments = [AppointmentRecord.from_row(row) for row in rows]

        occupancy = []
        for start, end in settings.grid(target_date):
            occupied = count_overlapping(db, start, end)
            occupancy.append(SlotOccupancy(
                start=start,
                end=end,
                occupied=occupied,
                available=max(0, settings.max_concurrent - occupied),
                capacity_percentage=round(occupied / settings.max_concurrent * 100, 1),
            ))

        current_concurrent = 0
        if target_date == now.date():
            # Appointments running at this instant: start <= now < end
            current_concurrent = count_overlapping(db, now, now + timedelta(microseconds=1))

    daily_count = len(appointments)
    return CapacityDashboard(
        date=target_date,
        max_concurrent=settings.max_concurrent,
        max_daily=settings.max_daily,
        working_hours=settings.working_hours,
        current_daily_count=daily_count,
        current_concurrent=current_concurrent,
        per_slot_occupancy=occupancy,
        appointments=appointments,
        peak_hours=_peak_hours(appointments),
        recommendations=_recommendations(daily_count, settings.max_daily, occupancy),
    )


def _peak_hours(appointments: list[AppointmentRecord], top: int = 3) -> list[tuple[str, int]]:
    """Top start hours by number of appointments."""
    counts = Counter(a.start.strftime("%H:00") for a in appointments)
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:top]


def _recommendations(
    daily_count: int,
    max_daily: int,
    occupancy: list[SlotOccupancy],
) -> list[dict]:
    recommendations = []
    daily_percentage = daily_count / max_daily * 100

    if daily_percentage >= 90:
        recommendations.append({
            "type": "critical",
            "message": "Daily capacity is almost full. Consider limiting new bookings.",
            "action": "restrict_booking",
        })
    elif daily_percentage >= 80:
        recommendations.append({
            "type": "warning",
            "message": "Daily capacity is high. Monitor closely.",
            "action": "monitor",
        })

    best = [slot for slot in occupancy if slot.capacity_percentage < BEST_SLOT_THRESHOLD]
    if best:
        recommendations.append({
            "type": "info",
            "message": "Recommend these time slots with lower occupancy",
            "best_times": [slot.start.strftime("%H:%M") for slot in best[:3]],
        })

    return recommendations
