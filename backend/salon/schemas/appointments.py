# backend/salon/schemas/appointments.py

from datetime import datetime, timedelta
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from ..services.capacity import AppointmentRecord, AppointmentStatus


class AppointmentCreate(BaseModel):
    start_time: datetime
    # Either end_time or duration_minutes (service duration from the catalog)
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)

    client_id: Optional[int] = None
    staff_id: Optional[int] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def resolve_end_time(self):
        if self.end_time is None and self.duration_minutes is None:
            raise ValueError("end_time or duration_minutes is required")
        if self.duration_minutes is not None:
            end_time = self.start_time + timedelta(minutes=self.duration_minutes)
            if self.end_time is not None and self.end_time != end_time:
                raise ValueError("end_time does not match start_time + duration_minutes")
            self.end_time = end_time
        return self


class AppointmentRead(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus

    client_id: Optional[int] = None
    staff_id: Optional[int] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_record(cls, record: AppointmentRecord) -> "AppointmentRead":
        return cls(
            id=record.id,
            start_time=record.start,
            end_time=record.end,
            status=record.status,
            client_id=record.client_id,
            staff_id=record.staff_id,
            notes=record.notes,
        )


class CapacityWarningRead(BaseModel):
    message: str
    capacity_percentage: float
    available_stations: int

    model_config = {"from_attributes": True}


class BookingRead(AppointmentRead):
    capacity_warning: Optional[CapacityWarningRead] = None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value):
        return AppointmentStatus.parse(value)
