"""
Overlap counting over half-open [start, end) intervals.

Two intervals A and B overlap iff A.start < B.end and B.start < A.end,
so touching endpoints ([09:00, 09:30) and [09:30, 10:00)) do not.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.generated import Appointments
from .errors import InvalidTimeRange
from .status import ACTIVE_STATUSES, AppointmentStatus


@dataclass(frozen=True)
class CapacityWindow:
    """Half-open [start, end) interval; never persisted."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is not None or self.end.tzinfo is not None:
            raise InvalidTimeRange(
                "Timestamps must be salon local time without a timezone offset",
                start=self.start.isoformat(),
                end=self.end.isoformat(),
            )
        if self.end <= self.start:
            raise InvalidTimeRange(
                "End time must be after start time",
                start=self.start.isoformat(),
                end=self.end.isoformat(),
            )

    @classmethod
    def of(cls, start: datetime, duration_minutes: int) -> "CapacityWindow":
        return cls(start, start + timedelta(minutes=duration_minutes))

    def overlaps(self, other: "CapacityWindow") -> bool:
        return self.start < other.end and other.start < self.end

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


def count_overlapping(
    db: Session,
    window_start: datetime,
    window_end: datetime,
    statuses: Iterable[AppointmentStatus] = ACTIVE_STATUSES,
) -> int:
    """
    Count ledger entries whose [start_at, end_at) intersects the window.

    Raises:
        InvalidTimeRange: zero or negative duration window.
    """
    window = CapacityWindow(window_start, window_end)
    status_values = [AppointmentStatus.parse(s).value for s in statuses]
    if not status_values:
        return 0

    return (
        db.query(func.count(Appointments.id))
        .filter(
            Appointments.status.in_(status_values),
            Appointments.start_at < window.end,
            Appointments.end_at > window.start,
        )
        .scalar()
    ) or 0
