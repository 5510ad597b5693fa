"""
Booking conflict checks.

Every booking or reschedule is validated here before anything is written.
Checks run in a fixed order and the first failure is returned:

1. the doctor exists
2. the start time is strictly in the future
3. the start time is a free slot in the doctor's template for that day
4. no Scheduled appointment of the doctor overlaps ``[start, start + 1h)``

Check 4 is not implied by check 3: a template with 30 minute slots
and one hour appointments can have a free slot whose hour still collides with
a neighbouring booking.
"""
from datetime import datetime
from typing import Callable, Optional
import logging

from sqlalchemy.orm import Session

from ..core.results import Ok, Reject, Rejection
from ..models.appointment import Appointment, AppointmentStatus, APPOINTMENT_DURATION
from ..models.doctor import Doctor
from .availability import AvailabilityCalculator, slot_key

logger = logging.getLogger(__name__)


def normalize_start_time(value: datetime) -> datetime:
    """Clinic-local naive datetime truncated to the minute."""
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.replace(second=0, microsecond=0)


class BookingConflictGuard:
    def __init__(
        self,
        db: Session,
        availability: Optional[AvailabilityCalculator] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db = db
        self.availability = availability or AvailabilityCalculator(db)
        self.clock = clock

    def validate_booking(self, doctor_id: int, start_time: datetime, lock: bool = False):
        """Validate a new appointment for ``doctor_id`` at ``start_time``.

        With ``lock`` the doctor row is held ``FOR UPDATE`` until the caller's
        transaction ends, serializing check-then-insert per doctor.
        """
        return self._validate(doctor_id, start_time, exclude_appointment_id=None, lock=lock)

    def validate_reschedule(
        self,
        appointment: Appointment,
        new_start_time: datetime,
        doctor_id: Optional[int] = None,
        lock: bool = False,
    ):
        """Same checks as a booking, ignoring the appointment being moved."""
        return self._validate(
            doctor_id if doctor_id is not None else appointment.doctor_id,
            new_start_time,
            exclude_appointment_id=appointment.id,
            lock=lock,
        )

    def check_ownership(self, appointment: Appointment, patient_id: Optional[int]):
        if patient_id is None or appointment.patient_id != patient_id:
            logger.warning(
                f"Patient {patient_id} denied access to appointment {appointment.id}"
            )
            return Reject(Rejection.NOT_OWNER)
        return Ok(appointment)

    def _validate(self, doctor_id, start_time, exclude_appointment_id, lock):
        query = self.db.query(Doctor).filter(Doctor.id == doctor_id)
        if lock:
            query = query.with_for_update()
        doctor = query.first()
        if not doctor:
            return Reject(Rejection.DOCTOR_NOT_FOUND)

        if not isinstance(start_time, datetime):
            return Reject(Rejection.PAST_OR_INVALID_TIME)
        start_time = normalize_start_time(start_time)
        if start_time <= self.now():
            return Reject(Rejection.PAST_OR_INVALID_TIME)

        available = self.availability.free_slots_for(
            doctor, start_time.date(), exclude_appointment_id=exclude_appointment_id
        )
        requested = slot_key(start_time)
        if requested not in {slot_key(slot) for slot in available}:
            return Reject(Rejection.SLOT_UNAVAILABLE)

        if self._overlapping(doctor.id, start_time, exclude_appointment_id):
            return Reject(Rejection.OVERLAP)

        return Ok(start_time)

    def _overlapping(self, doctor_id, start_time, exclude_appointment_id) -> bool:
        # [a, a+1h) and [b, b+1h) intersect exactly when |a - b| < 1h
        query = self.db.query(Appointment.id).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status == AppointmentStatus.SCHEDULED.value,
            Appointment.appointment_time > start_time - APPOINTMENT_DURATION,
            Appointment.appointment_time < start_time + APPOINTMENT_DURATION
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.first() is not None

    def now(self) -> datetime:
        """Current clinic-local time from the injected clock."""
        now = self.clock()
        if now.tzinfo is not None:
            now = now.astimezone().replace(tzinfo=None)
        return now
