"""
Typed snapshot of the salon settings the capacity engine reads.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Iterator, Mapping

from .errors import ConfigurationMissing

# Keys in the settings store
MAX_CONCURRENT = "max_concurrent_appointments"
MAX_DAILY = "max_daily_appointments"
WORK_START = "working_hours_start"
WORK_END = "working_hours_end"
SLOT_GRANULARITY = "slot_granularity_minutes"
WARNING_THRESHOLD = "capacity_warning_threshold"

# Documented defaults. max_concurrent_appointments has none on purpose.
DEFAULTS = {
    MAX_DAILY: 30,
    WORK_START: "09:00",
    WORK_END: "18:00",
    SLOT_GRANULARITY: 30,
    WARNING_THRESHOLD: 80,
}


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hours, minutes = value.strip().split(":")[:2]
    h, m = int(hours), int(minutes)
    if not (0 <= h <= 24 and 0 <= m < 60) or h * 60 + m > 24 * 60:
        raise ValueError(f"Invalid time: {value!r}")
    return h * 60 + m


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class CapacitySettings:
    """
    Capacity configuration.

    Attributes:
        max_concurrent: Stations (chairs/rooms) usable at the same instant
        max_daily: Capacity-consuming appointments allowed per calendar day
        work_start_minutes: Opening time, minutes since midnight
        work_end_minutes: Closing time, minutes since midnight
        slot_granularity_minutes: Step of the slot grid
        capacity_warning_threshold: Occupancy percent that triggers a warning
    """
    max_concurrent: int
    max_daily: int = 30
    work_start_minutes: int = 9 * 60
    work_end_minutes: int = 18 * 60
    slot_granularity_minutes: int = 30
    capacity_warning_threshold: int = 80

    def __post_init__(self):
        """Validate configuration."""
        if self.max_concurrent <= 0:
            raise ConfigurationMissing(MAX_CONCURRENT, f"{MAX_CONCURRENT} must be positive, got {self.max_concurrent}")
        if self.max_daily <= 0:
            raise ConfigurationMissing(MAX_DAILY, f"{MAX_DAILY} must be positive, got {self.max_daily}")
        if self.work_end_minutes <= self.work_start_minutes:
            raise ConfigurationMissing(
                WORK_END,
                f"{WORK_END} must be after {WORK_START}, got "
                f"{self.working_hours[0]}-{self.working_hours[1]}",
            )
        if self.slot_granularity_minutes <= 0:
            raise ConfigurationMissing(
                SLOT_GRANULARITY,
                f"{SLOT_GRANULARITY} must be positive, got {self.slot_granularity_minutes}",
            )

    @property
    def working_hours(self) -> tuple[str, str]:
        return (
            minutes_to_time_str(self.work_start_minutes),
            minutes_to_time_str(self.work_end_minutes),
        )

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """Opening and closing datetimes for a date."""
        midnight = datetime.combine(day, time.min)
        return (
            midnight + timedelta(minutes=self.work_start_minutes),
            midnight + timedelta(minutes=self.work_end_minutes),
        )

    def candidate_starts(self, day: date, duration_minutes: int) -> Iterator[datetime]:
        """
        Slot start times from opening up to closing - duration, in grid steps.
        """
        open_at, close_at = self.day_bounds(day)
        duration = timedelta(minutes=duration_minutes)
        step = timedelta(minutes=self.slot_granularity_minutes)

        t = open_at
        while t + duration <= close_at:
            yield t
            t += step

    def grid(self, day: date) -> Iterator[tuple[datetime, datetime]]:
        """Consecutive [t, t+step) cells covering the working day."""
        open_at, close_at = self.day_bounds(day)
        step = timedelta(minutes=self.slot_granularity_minutes)

        t = open_at
        while t < close_at:
            yield t, min(t + step, close_at)
            t += step


def load_capacity_settings(store) -> CapacitySettings:
    """
    Build a CapacitySettings snapshot from the settings store.

    Raises:
        ConfigurationMissing: required key absent or a value is unusable.
    """
    return _build(store.get(MAX_CONCURRENT), lambda key: store.get(key, DEFAULTS[key]))


def check_capacity_values(values: Mapping[str, Any]) -> None:
    """
    Validate a full set of setting values before they are stored.

    An absent station count is reported when the settings are loaded,
    so only the remaining fields are checked then.

    Raises:
        ConfigurationMissing: a value would make the settings unusable.
    """
    _build(values.get(MAX_CONCURRENT, 1), lambda key: values.get(key, DEFAULTS[key]))


def _build(max_concurrent_value, get: Callable[[str], Any]) -> CapacitySettings:
    max_concurrent = _as_int(max_concurrent_value, MAX_CONCURRENT)
    max_daily = _as_int(get(MAX_DAILY), MAX_DAILY)
    work_start = _as_minutes(get(WORK_START), WORK_START)
    work_end = _as_minutes(get(WORK_END), WORK_END)
    granularity = _as_int(get(SLOT_GRANULARITY), SLOT_GRANULARITY)
    threshold = _as_int(get(WARNING_THRESHOLD), WARNING_THRESHOLD)

    return CapacitySettings(
        max_concurrent=max_concurrent,
        max_daily=max_daily,
        work_start_minutes=work_start,
        work_end_minutes=work_end,
        slot_granularity_minutes=granularity,
        capacity_warning_threshold=threshold,
    )


def _as_int(value, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationMissing(key, f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationMissing(key, f"{key} must be an integer, got {value!r}") from None


def _as_minutes(value, key: str) -> int:
    try:
        return time_str_to_minutes(str(value))
    except ValueError:
        raise ConfigurationMissing(key, f"{key} must be HH:MM, got {value!r}") from None
