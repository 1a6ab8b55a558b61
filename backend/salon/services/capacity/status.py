"""Appointment status: closed set of four values and the legal transitions."""

from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, raw: "str | AppointmentStatus") -> "AppointmentStatus":
        """Accept any casing of a known status, reject everything else."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            for status in cls:
                if status.value.lower() == raw.strip().lower():
                    return status
        raise ValueError(f"Unknown appointment status: {raw!r}")

    @property
    def consumes_capacity(self) -> bool:
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)

    def can_transition_to(self, new: "AppointmentStatus") -> bool:
        return new in _TRANSITIONS[self]


ACTIVE_STATUSES: frozenset[AppointmentStatus] = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
})

_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}
