"""
Capacity error taxonomy.

Raised inside the engine, converted into typed results
(AdmissionResult / CapacityCheck) at the controller boundary.
"""

from dataclasses import dataclass, field
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_TIME_RANGE = "invalid_time_range"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    CONCURRENCY_CONFLICT = "concurrency_conflict"
    CONFIGURATION_MISSING = "configuration_missing"


class CapacityError(Exception):
    """Base for all capacity rejections."""

    kind: ErrorKind
    retryable: bool = False

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_rejection(self) -> "Rejection":
        return Rejection(
            kind=self.kind,
            message=self.message,
            retryable=self.retryable,
            details=dict(self.details),
        )


class InvalidTimeRange(CapacityError):
    kind = ErrorKind.INVALID_TIME_RANGE


class DailyLimitExceeded(CapacityError):
    kind = ErrorKind.DAILY_LIMIT_EXCEEDED


class CapacityExceeded(CapacityError):
    kind = ErrorKind.CAPACITY_EXCEEDED


class ConcurrencyConflict(CapacityError):
    kind = ErrorKind.CONCURRENCY_CONFLICT
    retryable = True


class ConfigurationMissing(CapacityError):
    kind = ErrorKind.CONFIGURATION_MISSING

    def __init__(self, key: str, message: str | None = None):
        super().__init__(
            message or f"Required salon setting '{key}' is not configured",
            key=key,
        )
        self.key = key


# ── Status workflow ──────────────────────────────────────────────────────


class AppointmentNotFound(Exception):
    def __init__(self, appointment_id: int):
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id


class InvalidStatusTransition(Exception):
    def __init__(self, current, requested):
        super().__init__(
            f"Cannot change status from {current.value} to {requested.value}"
        )
        self.current = current
        self.requested = requested


@dataclass(frozen=True)
class Rejection:
    """Typed, expected outcome of a refused admission."""
    kind: ErrorKind
    message: str
    retryable: bool = False
    details: dict = field(default_factory=dict)
