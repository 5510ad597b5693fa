"""
Doctor availability.

A doctor's template is an ordered list of time-of-day strings. Free slots for
a date are the template entries whose minute-granular key is not taken by a
Scheduled appointment that day. Template strings and booking times are both
reduced to ``datetime.time(hour, minute)`` before comparison, so "09:00",
"09:00:00" and "09:00-10:00" all name the same slot.
"""
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Union
import logging

from sqlalchemy.orm import Session

from ..core.results import Ok, Reject, Rejection
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor

logger = logging.getLogger(__name__)

_SLOT_FORMATS = ("%H:%M", "%H:%M:%S", "%H:%M:%S.%f")


def slot_key(value: Union[str, time, datetime]) -> Optional[time]:
    """Normalize a slot string, time or datetime to minute granularity.

    Returns None for strings that do not name a time of day.
    """
    if isinstance(value, datetime):
        return time(value.hour, value.minute)
    if isinstance(value, time):
        return time(value.hour, value.minute)
    if not isinstance(value, str):
        return None

    # "09:00-10:00" ranges name the slot by their start
    text = value.strip().split("-", 1)[0].strip()
    for fmt in _SLOT_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return time(parsed.hour, parsed.minute)
    return None


def free_slots(template: Iterable[str], booked: Iterable[Union[time, datetime]]) -> List[str]:
    """Template entries not covered by ``booked``, in template order."""
    booked_keys = {slot_key(start) for start in booked}

    available = []
    for slot in template or ():
        key = slot_key(slot)
        if key is None:
            logger.warning(f"Ignoring unparseable availability slot {slot!r}")
            continue
        if key not in booked_keys:
            available.append(slot)
    return available


def day_bounds(day: date):
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class AvailabilityCalculator:
    def __init__(self, db: Session):
        self.db = db

    def compute_free_slots(self, doctor_id: int, day: date):
        """Free template slots for ``doctor_id`` on ``day``.

        Returns ``Ok(list_of_slots)`` or ``Reject(DOCTOR_NOT_FOUND)``.
        """
        doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if not doctor:
            return Reject(Rejection.DOCTOR_NOT_FOUND)
        return Ok(self.free_slots_for(doctor, day))

    def free_slots_for(
        self,
        doctor: Doctor,
        day: date,
        exclude_appointment_id: Optional[int] = None,
    ) -> List[str]:
        """Free slots for an already loaded doctor.

        ``exclude_appointment_id`` leaves one booking out of the taken set,
        which lets a reschedule keep or move within its own slot.
        """
        booked = [
            appointment.appointment_time
            for appointment in self.scheduled_on(doctor.id, day)
            if appointment.id != exclude_appointment_id
        ]
        return free_slots(doctor.available_times, booked)

    def scheduled_on(self, doctor_id: int, day: date) -> List[Appointment]:
        start_of_day, end_of_day = day_bounds(day)
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status == AppointmentStatus.SCHEDULED.value,
            Appointment.appointment_time >= start_of_day,
            Appointment.appointment_time < end_of_day
        ).all()
