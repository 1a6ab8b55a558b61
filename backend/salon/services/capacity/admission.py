"""
Admission controller: the only way capacity-consuming rows enter the ledger.

try_admit() runs its checks and the insert while holding the per-date
lock, inside a session opened after the lock was taken, so every count
sees all admissions and cancellations committed before it.

Order of checks:
1. Time range valid and inside working hours → InvalidTimeRange
2. Daily count < max_daily                   → DailyLimitExceeded
3. Overlapping count < max_concurrent        → CapacityExceeded
4. Insert as Pending, commit, release lock
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import CapacitySettings, load_capacity_settings
from .discovery import first_available_slot
from .errors import (
    AppointmentNotFound,
    CapacityError,
    CapacityExceeded,
    ConcurrencyConflict,
    ConfigurationMissing,
    DailyLimitExceeded,
    InvalidStatusTransition,
    InvalidTimeRange,
    Rejection,
)
from .ledger import (
    AppointmentRecord,
    count_for_day,
    get_appointment,
    insert_appointment,
    set_status,
)
from .overlap import CapacityWindow, count_overlapping
from .status import AppointmentStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapacityFigures:
    current: int
    max: int

    @property
    def available(self) -> int:
        return max(0, self.max - self.current)

    @property
    def percentage(self) -> float:
        return round(self.current / self.max * 100, 1)


@dataclass(frozen=True)
class CapacityWarning:
    message: str
    capacity_percentage: float
    available_stations: int


@dataclass(frozen=True)
class AdmissionResult:
    record: AppointmentRecord | None = None
    rejection: Rejection | None = None
    warning: CapacityWarning | None = None

    @property
    def admitted(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class CapacityCheck:
    admissible: bool
    rejection: Rejection | None = None
    daily: CapacityFigures | None = None
    concurrent: CapacityFigures | None = None


class AdmissionController:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        settings_store,
        locks,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 0.05,
    ):
        self.session_factory = session_factory
        self.settings_store = settings_store
        self.locks = locks
        self.retry_attempts = retry_attempts
        self.retry_backoff_seconds = retry_backoff_seconds

    # ── Public API ───────────────────────────────────────────────────────

    def try_admit(
        self,
        proposed_start: datetime,
        proposed_end: datetime,
        *,
        status: AppointmentStatus = AppointmentStatus.PENDING,
        client_id: int | None = None,
        staff_id: int | None = None,
        notes: str | None = None,
    ) -> AdmissionResult:
        """
        Atomically check capacity and create the appointment.

        Returns:
            AdmissionResult with either the created record (and an optional
            capacity warning) or the rejection reason.
        """
        if not status.consumes_capacity:
            raise ValueError(f"New appointments must be Pending or Confirmed, got {status.value}")

        try:
            settings = self._load_settings()
            window = self._validate_window(proposed_start, proposed_end, settings)
            try:
                record, warning = self._retrying()(
                    self._admit_once,
                    window,
                    settings,
                    status,
                    {"client_id": client_id, "staff_id": staff_id, "notes": notes},
                )
            except CapacityExceeded as e:
                # Outside the date lock
                self._suggest_next_slot(e, window, settings)
                raise
        except CapacityError as e:
            self._log_rejection(e, proposed_start, proposed_end)
            return AdmissionResult(rejection=e.to_rejection())

        logger.info(
            f"Appointment {record.id} admitted: "
            f"{record.start.isoformat()} - {record.end.isoformat()}"
        )
        return AdmissionResult(record=record, warning=warning)

    def check_capacity(self, proposed_start: datetime, proposed_end: datetime) -> CapacityCheck:
        """
        Read-only pre-check with the same rules as try_admit, without the insert.

        The answer can be stale by the time the booking is submitted.
        """
        try:
            settings = self._load_settings()
            window = self._validate_window(proposed_start, proposed_end, settings)
            with self.session_factory() as db:
                daily, concurrent = self._measure(db, window, settings)
                error = self._limit_error(window, daily, concurrent)
            if isinstance(error, CapacityExceeded):
                self._suggest_next_slot(error, window, settings)
        except CapacityError as e:
            return CapacityCheck(admissible=False, rejection=e.to_rejection())

        return CapacityCheck(
            admissible=error is None,
            rejection=error.to_rejection() if error else None,
            daily=daily,
            concurrent=concurrent,
        )

    def transition_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus | str,
    ) -> AppointmentRecord:
        """
        Change an appointment's status under the lock of its date.

        Raises:
            ValueError: unknown status value
            AppointmentNotFound: no such appointment
            InvalidStatusTransition: transition not allowed
            ConcurrencyConflict: date lock not acquired after retries
        """
        new_status = AppointmentStatus.parse(new_status)

        with self.session_factory() as db:
            row = get_appointment(db, appointment_id)
            if row is None:
                raise AppointmentNotFound(appointment_id)
            day = row.day

        return self._retrying()(self._transition_once, appointment_id, day, new_status)

    # ── Internals ────────────────────────────────────────────────────────

    def _load_settings(self) -> CapacitySettings:
        return load_capacity_settings(self.settings_store)

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type(ConcurrencyConflict),
            stop=stop_after_attempt(self.retry_attempts + 1),
            wait=wait_exponential(multiplier=self.retry_backoff_seconds, max=2),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _validate_window(
        self,
        start: datetime,
        end: datetime,
        settings: CapacitySettings,
    ) -> CapacityWindow:
        window = CapacityWindow(start, end)
        open_at, close_at = settings.day_bounds(window.start.date())
        if window.start < open_at or window.end > close_at:
            raise InvalidTimeRange(
                "Appointment must be within working hours "
                f"{settings.working_hours[0]}-{settings.working_hours[1]}",
                start=window.start.isoformat(),
                end=window.end.isoformat(),
                working_hours={
                    "start": settings.working_hours[0],
                    "end": settings.working_hours[1],
                },
            )
        return window

    def _measure(
        self,
        db: Session,
        window: CapacityWindow,
        settings: CapacitySettings,
    ) -> tuple[CapacityFigures, CapacityFigures]:
        daily = CapacityFigures(count_for_day(db, window.start.date()), settings.max_daily)
        concurrent = CapacityFigures(
            count_overlapping(db, window.start, window.end),
            settings.max_concurrent,
        )
        return daily, concurrent

    def _limit_error(
        self,
        window: CapacityWindow,
        daily: CapacityFigures,
        concurrent: CapacityFigures,
    ) -> CapacityError | None:
        day = window.start.date()

        if daily.current >= daily.max:
            return DailyLimitExceeded(
                f"The salon is fully booked for {day.isoformat()}. "
                f"Maximum daily appointments ({daily.max}) reached.",
                date=day.isoformat(),
                current_bookings=daily.current,
                max_allowed=daily.max,
            )

        if concurrent.current >= concurrent.max:
            return CapacityExceeded(
                "The salon is at full capacity for this time slot. "
                f"All {concurrent.max} service stations are occupied.",
                current_concurrent=concurrent.current,
                max_capacity=concurrent.max,
                next_available_slot=None,
            )

        return None

    def _suggest_next_slot(
        self,
        error: CapacityExceeded,
        window: CapacityWindow,
        settings: CapacitySettings,
    ) -> None:
        """Fill in the first bookable start time of the same day and duration."""
        with self.session_factory() as db:
            next_slot = first_available_slot(db, settings, window.start.date(), window.duration_minutes)
        error.details["next_available_slot"] = next_slot.start.isoformat() if next_slot else None

    def _admit_once(
        self,
        window: CapacityWindow,
        settings: CapacitySettings,
        status: AppointmentStatus,
        fields: dict,
    ) -> tuple[AppointmentRecord, CapacityWarning | None]:
        with self.locks.hold(window.start.date()):
            with self.session_factory() as db:
                daily, concurrent = self._measure(db, window, settings)
                error = self._limit_error(window, daily, concurrent)
                if error is not None:
                    raise error

                row = insert_appointment(db, window, status=status, **fields)
                db.commit()
                record = AppointmentRecord.from_row(row)

        occupied = concurrent.current + 1
        percentage = round(occupied / settings.max_concurrent * 100, 1)
        warning = None
        if percentage >= settings.capacity_warning_threshold:
            warning = CapacityWarning(
                message="Salon is near capacity",
                capacity_percentage=percentage,
                available_stations=settings.max_concurrent - occupied,
            )
        return record, warning

    def _transition_once(
        self,
        appointment_id: int,
        day,
        new_status: AppointmentStatus,
    ) -> AppointmentRecord:
        with self.locks.hold(day):
            with self.session_factory() as db:
                row = get_appointment(db, appointment_id)
                if row is None:
                    raise AppointmentNotFound(appointment_id)

                current = AppointmentStatus.parse(row.status)
                if current == new_status:
                    return AppointmentRecord.from_row(row)
                if not current.can_transition_to(new_status):
                    raise InvalidStatusTransition(current, new_status)

                set_status(db, row, new_status)
                db.commit()
                record = AppointmentRecord.from_row(row)

        logger.info(
            f"Appointment {appointment_id} status changed: "
            f"{current.value} → {new_status.value}"
        )
        return record

    def _log_rejection(self, error: CapacityError, start: datetime, end: datetime) -> None:
        if isinstance(error, ConcurrencyConflict):
            logger.warning(f"Admission gave up after retries ({start} - {end}): {error.message}")
        elif isinstance(error, ConfigurationMissing):
            logger.error(f"Admission impossible, configuration error: {error.message}")
        else:
            logger.info(f"Admission rejected ({error.kind.value}) for {start} - {end}")
