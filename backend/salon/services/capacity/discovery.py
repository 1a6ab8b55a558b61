"""
Slot discovery: bookable start times for a date and a service duration.

Uses the same counts and limits as the admission controller, so a slot
listed here is admitted by try_admit() unless the ledger changes in between.
Nothing is cached: every booking or cancellation changes the answer.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from .config import CapacitySettings, load_capacity_settings
from .errors import InvalidTimeRange
from .ledger import count_for_day
from .overlap import count_overlapping

LIMITED_THRESHOLD = 80  # percent occupied


@dataclass(frozen=True)
class SlotAvailability:
    start: datetime
    end: datetime
    available_stations: int
    max_stations: int

    @property
    def occupied(self) -> int:
        return self.max_stations - self.available_stations

    @property
    def capacity_percentage(self) -> float:
        return round(self.occupied / self.max_stations * 100, 1)

    @property
    def status(self) -> str:
        if self.available_stations == self.max_stations:
            return "available"
        if self.capacity_percentage >= LIMITED_THRESHOLD:
            return "limited"
        return "available"


def iter_available_slots(
    db: Session,
    settings: CapacitySettings,
    target_date: date,
    duration_minutes: int,
) -> Iterator[SlotAvailability]:
    """Yield slots with at least one free station, in chronological order."""
    if duration_minutes <= 0:
        raise InvalidTimeRange(
            f"Duration must be positive, got {duration_minutes}",
            duration=duration_minutes,
        )

    # Day quota exhausted: nothing is bookable
    if count_for_day(db, target_date) >= settings.max_daily:
        return

    duration = timedelta(minutes=duration_minutes)
    for start in settings.candidate_starts(target_date, duration_minutes):
        end = start + duration
        occupied = count_overlapping(db, start, end)
        available = settings.max_concurrent - occupied
        if available > 0:
            yield SlotAvailability(
                start=start,
                end=end,
                available_stations=available,
                max_stations=settings.max_concurrent,
            )


def first_available_slot(
    db: Session,
    settings: CapacitySettings,
    target_date: date,
    duration_minutes: int,
) -> SlotAvailability | None:
    return next(iter_available_slots(db, settings, target_date, duration_minutes), None)


class AvailableSlots:
    """
    Lazy, restartable slot listing.

    Each iteration reads settings and the ledger afresh.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        settings_store,
        target_date: date,
        duration_minutes: int,
    ):
        self.session_factory = session_factory
        self.settings_store = settings_store
        self.target_date = target_date
        self.duration_minutes = duration_minutes

    def __iter__(self) -> Iterator[SlotAvailability]:
        settings = load_capacity_settings(self.settings_store)
        with self.session_factory() as db:
            yield from iter_available_slots(db, settings, self.target_date, self.duration_minutes)


class SlotDiscovery:
    def __init__(self, session_factory: Callable[[], Session], settings_store):
        self.session_factory = session_factory
        self.settings_store = settings_store

    def available_slots(self, target_date: date, duration_minutes: int) -> AvailableSlots:
        """
        Raises:
            InvalidTimeRange: non-positive duration (checked eagerly).
        """
        if duration_minutes <= 0:
            raise InvalidTimeRange(
                f"Duration must be positive, got {duration_minutes}",
                duration=duration_minutes,
            )
        return AvailableSlots(self.session_factory, self.settings_store, target_date, duration_minutes)

    def max_stations(self) -> int:
        return load_capacity_settings(self.settings_store).max_concurrent
