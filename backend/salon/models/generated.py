from sqlalchemy import Column, Date, DateTime, Index, Integer, Text, func, text

from sqlalchemy.orm import declarative_base

Base = declarative_base()
metadata = Base.metadata


class Appointments(Base):
    __tablename__ = 'appointments'
    __table_args__ = (
        # Overlap queries: status IN (...) AND start_at < :end AND end_at > :start
        Index('ix_appointments_status_start', 'status', 'start_at'),
        # Daily quota: day = :day AND status IN (...)
        Index('ix_appointments_day_status', 'day', 'status'),
    )

    id = Column(Integer, primary_key=True)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    day = Column(Date, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'Pending'"))
    client_id = Column(Integer)
    staff_id = Column(Integer)
    notes = Column(Text)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())


class SalonSettings(Base):
    __tablename__ = 'salon_settings'

    id = Column(Integer, primary_key=True)
    key = Column(Text, nullable=False, unique=True)
    value = Column(Text, nullable=False)
    type = Column(Text, nullable=False, server_default=text("'string'"))
    description = Column(Text)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    updated_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
