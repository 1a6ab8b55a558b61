"""
Appointment ledger: durable appointment rows and the queries the engine needs.

Only the admission controller inserts capacity-consuming rows.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.generated import Appointments
from .overlap import CapacityWindow
from .status import ACTIVE_STATUSES, AppointmentStatus


@dataclass(frozen=True)
class AppointmentRecord:
    id: int
    start: datetime
    end: datetime
    status: AppointmentStatus
    client_id: int | None = None
    staff_id: int | None = None
    notes: str | None = None

    @classmethod
    def from_row(cls, row: Appointments) -> "AppointmentRecord":
        return cls(
            id=row.id,
            start=row.start_at,
            end=row.end_at,
            status=AppointmentStatus.parse(row.status),
            client_id=row.client_id,
            staff_id=row.staff_id,
            notes=row.notes,
        )


def count_for_day(
    db: Session,
    day: date,
    statuses: Iterable[AppointmentStatus] = ACTIVE_STATUSES,
) -> int:
    """Count appointments whose start falls on the calendar date."""
    return (
        db.query(func.count(Appointments.id))
        .filter(
            Appointments.day == day,
            Appointments.status.in_([s.value for s in statuses]),
        )
        .scalar()
    ) or 0


def list_for_day(
    db: Session,
    day: date,
    statuses: Iterable[AppointmentStatus] | None = None,
) -> list[Appointments]:
    query = db.query(Appointments).filter(Appointments.day == day)
    if statuses is not None:
        query = query.filter(Appointments.status.in_([s.value for s in statuses]))
    return query.order_by(Appointments.start_at, Appointments.id).all()


def get_appointment(db: Session, appointment_id: int) -> Appointments | None:
    return db.get(Appointments, appointment_id)


def insert_appointment(
    db: Session,
    window: CapacityWindow,
    status: AppointmentStatus = AppointmentStatus.PENDING,
    client_id: int | None = None,
    staff_id: int | None = None,
    notes: str | None = None,
) -> Appointments:
    """Add a row to the session and flush it (caller commits)."""
    now = datetime.utcnow()
    row = Appointments(
        start_at=window.start,
        end_at=window.end,
        day=window.start.date(),
        status=status.value,
        client_id=client_id,
        staff_id=staff_id,
        notes=notes,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.flush()
    return row


def set_status(db: Session, row: Appointments, status: AppointmentStatus) -> None:
    row.status = status.value
    row.updated_at = datetime.utcnow()
    db.flush()
