"""
Appointment lifecycle.

Scheduled is the only initial state; Completed and Cancelled are terminal.
Every transition loads the appointment row with ``FOR UPDATE`` and checks the
current state inside the same transaction that writes the new one.
"""
from datetime import date, datetime
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.results import Ok, Reject, Rejection
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from ..models.patient import Patient
from .availability import day_bounds
from .booking_guard import BookingConflictGuard

logger = logging.getLogger(__name__)


class AppointmentLifecycleManager:
    def __init__(self, db: Session, guard: Optional[BookingConflictGuard] = None):
        self.db = db
        self.guard = guard or BookingConflictGuard(db)

    def book(
        self,
        doctor_id: int,
        patient_id: int,
        start_time: datetime,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ):
        """Create a Scheduled appointment once every booking check passes.

        The doctor and time checks come first; the patient is checked last.
        """
        validation = self.guard.validate_booking(doctor_id, start_time, lock=True)
        if not validation.ok:
            self.db.rollback()
            logger.info(
                f"Booking rejected for doctor {doctor_id}: {validation.reason.value}"
            )
            return validation

        if not self.db.query(Patient.id).filter(Patient.id == patient_id).first():
            self.db.rollback()
            return Reject(Rejection.PATIENT_NOT_FOUND)

        appointment = Appointment(
            doctor_id=doctor_id,
            patient_id=patient_id,
            appointment_time=validation.value,
            status=AppointmentStatus.SCHEDULED.value,
            reason=reason,
            notes=notes,
        )
        self.db.add(appointment)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent booking for the same slot
            self.db.rollback()
            logger.info(f"Concurrent booking for doctor {doctor_id} at {validation.value}")
            return Reject(Rejection.OVERLAP)

        self.db.refresh(appointment)
        logger.info(
            f"Booked appointment {appointment.id} for patient {patient_id} "
            f"with doctor {doctor_id} at {appointment.appointment_time}"
        )
        return Ok(appointment)

    def reschedule(
        self,
        appointment_id: int,
        requesting_patient_id: int,
        new_start_time: datetime,
        doctor_id: Optional[int] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ):
        """Move a Scheduled appointment owned by the requesting patient."""
        loaded = self._load_owned_scheduled(appointment_id, requesting_patient_id)
        if not loaded.ok:
            return loaded
        appointment = loaded.value

        validation = self.guard.validate_reschedule(
            appointment, new_start_time, doctor_id=doctor_id, lock=True
        )
        if not validation.ok:
            self.db.rollback()
            return validation

        if doctor_id is not None:
            appointment.doctor_id = doctor_id
        appointment.appointment_time = validation.value
        if reason is not None:
            appointment.reason = reason
        if notes is not None:
            appointment.notes = notes

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return Reject(Rejection.OVERLAP)

        self.db.refresh(appointment)
        logger.info(f"Rescheduled appointment {appointment.id} to {appointment.appointment_time}")
        return Ok(appointment)

    def cancel(self, appointment_id: int, requesting_patient_id: int):
        """Scheduled -> Cancelled, only for the owning patient."""
        loaded = self._load_owned_scheduled(appointment_id, requesting_patient_id)
        if not loaded.ok:
            return loaded
        appointment = loaded.value

        appointment.status = AppointmentStatus.CANCELLED.value
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"Cancelled appointment {appointment.id}")
        return Ok(appointment)

    def mark_prescribed(self, appointment_id: int, commit: bool = True):
        """Scheduled -> Completed after a prescription is issued."""
        appointment = self._lock(appointment_id)
        if not appointment:
            return Reject(Rejection.APPOINTMENT_NOT_FOUND)
        if appointment.state.is_terminal:
            self.db.rollback()
            return Reject(Rejection.NOT_SCHEDULED)

        appointment.status = AppointmentStatus.COMPLETED.value
        if commit:
            self.db.commit()
            self.db.refresh(appointment)
        logger.info(f"Appointment {appointment.id} completed")
        return Ok(appointment)

    def purge_for_doctor(self, doctor_id: int) -> int:
        """Delete every appointment of a doctor regardless of state or owner.

        Administrative cascade for doctor deletion; the caller commits.
        """
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id
        ).delete(synchronize_session=False)

    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def list_for_doctor(self, doctor_id: int, day: date, patient_name: Optional[str] = None):
        """A doctor's appointments on ``day``, optionally by patient name."""
        start_of_day, end_of_day = day_bounds(day)
        query = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_time >= start_of_day,
            Appointment.appointment_time < end_of_day
        )
        if patient_name:
            query = query.join(Patient, Patient.id == Appointment.patient_id).filter(
                Patient.name.ilike(f"%{patient_name}%")
            )
        return query.order_by(Appointment.appointment_time).all()

    def list_for_patient(
        self,
        patient_id: int,
        condition: Optional[str] = None,
        doctor_name: Optional[str] = None,
    ):
        """A patient's appointments, filtered by ``past``/``future`` and doctor name."""
        query = self.db.query(Appointment).filter(Appointment.patient_id == patient_id)

        if condition:
            now = self.guard.now()
            if condition.lower() == "past":
                query = query.filter(Appointment.appointment_time < now)
            elif condition.lower() == "future":
                query = query.filter(Appointment.appointment_time > now)
            else:
                return Reject(Rejection.INVALID_CONDITION)

        if doctor_name:
            query = query.join(Doctor, Doctor.id == Appointment.doctor_id).filter(
                Doctor.name.ilike(f"%{doctor_name}%")
            )
        return Ok(query.order_by(Appointment.appointment_time).all())

    def _lock(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).with_for_update().first()

    def _load_owned_scheduled(self, appointment_id: int, patient_id: int):
        appointment = self._lock(appointment_id)
        if not appointment:
            return Reject(Rejection.APPOINTMENT_NOT_FOUND)

        owned = self.guard.check_ownership(appointment, patient_id)
        if not owned.ok:
            self.db.rollback()
            return owned

        if appointment.state.is_terminal:
            self.db.rollback()
            return Reject(Rejection.NOT_SCHEDULED)
        return Ok(appointment)
