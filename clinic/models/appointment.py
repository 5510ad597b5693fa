from datetime import timedelta
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Index, text
from sqlalchemy.sql import func
import enum

from ..core.database import Base

APPOINTMENT_DURATION = timedelta(hours=1)

class AppointmentStatus(enum.IntEnum):
    SCHEDULED = 0
    COMPLETED = 1
    CANCELLED = 2

    @property
    def is_terminal(self) -> bool:
        return self is not AppointmentStatus.SCHEDULED

class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one Scheduled appointment per doctor and start time, enforced
        # by the database so concurrent bookings cannot both commit.
        Index(
            "uq_appointments_scheduled_doctor_time",
            "doctor_id",
            "appointment_time",
            unique=True,
            sqlite_where=text("status = 0"),
            postgresql_where=text("status = 0"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Foreign keys only; doctors and patients hold no back-references
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)

    # Appointment details
    appointment_time = Column(DateTime, nullable=False, index=True)
    status = Column(Integer, nullable=False, default=AppointmentStatus.SCHEDULED.value)
    reason = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def end_time(self):
        return self.appointment_time + APPOINTMENT_DURATION

    @property
    def appointment_date(self):
        return self.appointment_time.date()

    @property
    def appointment_time_only(self):
        return self.appointment_time.time()

    @property
    def state(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, time='{self.appointment_time}')>"
