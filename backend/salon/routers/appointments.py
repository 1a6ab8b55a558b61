# backend/salon/routers/appointments.py
# PATCH /{id}/status = ALLOWED, DELETE = 405 (ledger keeps history)

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import Appointments as DBAppointments
from ..responses import rejection_response
from ..schemas.appointments import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
    BookingRead,
    CapacityWarningRead,
)
from ..services.capacity import (
    AppointmentNotFound,
    AppointmentRecord,
    CapacityEngine,
    InvalidStatusTransition,
    get_capacity_engine,
)

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("/", response_model=list[AppointmentRead])
def list_appointments(
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    rows = (
        db.query(DBAppointments)
        .filter(DBAppointments.day == target_date)
        .order_by(DBAppointments.start_at, DBAppointments.id)
        .all()
    )
    return [AppointmentRead.from_record(AppointmentRecord.from_row(row)) for row in rows]


@router.get("/{id}", response_model=AppointmentRead)
def get_appointment(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBAppointments, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return AppointmentRead.from_record(AppointmentRecord.from_row(obj))


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: AppointmentCreate,
    engine: CapacityEngine = Depends(get_capacity_engine),
):
    result = engine.admission.try_admit(
        data.start_time,
        data.end_time,
        client_id=data.client_id,
        staff_id=data.staff_id,
        notes=data.notes,
    )
    if not result.admitted:
        return rejection_response(result.rejection)

    booking = BookingRead.from_record(result.record)
    if result.warning is not None:
        booking.capacity_warning = CapacityWarningRead(
            message=result.warning.message,
            capacity_percentage=result.warning.capacity_percentage,
            available_stations=result.warning.available_stations,
        )
    return booking


@router.patch("/{id}/status", response_model=AppointmentRead)
def update_appointment_status(
    id: int,
    data: AppointmentStatusUpdate,
    engine: CapacityEngine = Depends(get_capacity_engine),
):
    try:
        record = engine.admission.transition_status(id, data.status)
    except AppointmentNotFound:
        raise HTTPException(status_code=404, detail="Not found")
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return AppointmentRead.from_record(record)


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
