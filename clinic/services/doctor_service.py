from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..core.results import Ok, Reject, Rejection
from ..core.security import get_password_hash
from ..models.appointment import Appointment
from ..models.doctor import Doctor
from ..models.prescription import Prescription
from ..schemas.doctor import DoctorCreate, DoctorUpdate
from .appointment_service import AppointmentLifecycleManager
from .availability import slot_key

logger = logging.getLogger(__name__)

class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def create_doctor(self, doctor_data: DoctorCreate):
        """Add a doctor; the email must not be registered yet."""
        existing = self.db.query(Doctor).filter(Doctor.email == doctor_data.email).first()
        if existing:
            return Reject(Rejection.DUPLICATE, detail="Doctor already exists")

        doctor = Doctor(
            name=doctor_data.name,
            specialty=doctor_data.specialty,
            email=doctor_data.email,
            password_hash=get_password_hash(doctor_data.password),
            phone=doctor_data.phone,
            available_times=list(doctor_data.available_times),
        )
        self.db.add(doctor)
        self.db.commit()
        self.db.refresh(doctor)

        logger.info(f"Created doctor {doctor.id}")
        return Ok(doctor)

    def update_doctor(self, doctor_id: int, doctor_data: DoctorUpdate):
        doctor = self.get_doctor(doctor_id)
        if not doctor:
            return Reject(Rejection.DOCTOR_NOT_FOUND)

        updates = doctor_data.model_dump(exclude_unset=True)
        if "email" in updates and updates["email"] != doctor.email:
            taken = self.db.query(Doctor).filter(Doctor.email == updates["email"]).first()
            if taken:
                return Reject(Rejection.DUPLICATE, detail="Email already registered")

        if "password" in updates:
            doctor.password_hash = get_password_hash(updates.pop("password"))
        if "available_times" in updates:
            doctor.available_times = list(updates.pop("available_times"))
        for field, value in updates.items():
            setattr(doctor, field, value)

        self.db.commit()
        self.db.refresh(doctor)
        return Ok(doctor)

    def get_doctor(self, doctor_id: int) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.id == doctor_id).first()

    def list_doctors(self) -> List[Doctor]:
        return self.db.query(Doctor).order_by(Doctor.id).all()

    def filter_doctors(
        self,
        name: Optional[str] = None,
        specialty: Optional[str] = None,
        period: Optional[str] = None,
    ) -> List[Doctor]:
        """Doctors by name substring, exact specialty (both case-insensitive)
        and whether their template has any slot in the AM or PM.
        """
        query = self.db.query(Doctor)
        if name:
            query = query.filter(Doctor.name.ilike(f"%{name}%"))
        if specialty:
            query = query.filter(Doctor.specialty.ilike(specialty))
        doctors = query.order_by(Doctor.id).all()

        if not period or period.strip().upper() not in ("AM", "PM"):
            return doctors
        return [d for d in doctors if _has_slot_in(d, period.strip().upper())]

    def delete_doctor(self, doctor_id: int):
        """Delete a doctor and every appointment (and prescription) attached.

        Administrative override: appointments go regardless of status or owner.
        """
        doctor = self.get_doctor(doctor_id)
        if not doctor:
            return Reject(Rejection.DOCTOR_NOT_FOUND)

        appointment_ids = select(Appointment.id).where(Appointment.doctor_id == doctor_id)
        self.db.query(Prescription).filter(
            Prescription.appointment_id.in_(appointment_ids)
        ).delete(synchronize_session=False)

        removed = AppointmentLifecycleManager(self.db).purge_for_doctor(doctor_id)
        self.db.delete(doctor)
        self.db.commit()

        logger.info(f"Deleted doctor {doctor_id} and {removed} appointments")
        return Ok(removed)

def _has_slot_in(doctor: Doctor, period: str) -> bool:
    for slot in doctor.available_times or ():
        key = slot_key(slot)
        if key is None:
            continue
        if period == "AM" and key.hour < 12:
            return True
        if period == "PM" and key.hour >= 12:
            return True
    return False
