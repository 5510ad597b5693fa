from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..core.results import Ok, Reject, Rejection
from ..models.prescription import Prescription
from ..schemas.prescription import PrescriptionCreate
from .appointment_service import AppointmentLifecycleManager

logger = logging.getLogger(__name__)

class PrescriptionService:
    def __init__(self, db: Session, lifecycle: Optional[AppointmentLifecycleManager] = None):
        self.db = db
        self.lifecycle = lifecycle or AppointmentLifecycleManager(db)

    def save_prescription(self, prescription_data: PrescriptionCreate):
        """Store a prescription and complete its appointment in one transaction.

        A second prescription for the same appointment is a duplicate and never
        reaches the appointment transition.
        """
        if self.get_prescription(prescription_data.appointment_id):
            return Reject(Rejection.DUPLICATE, detail="Prescription already exists for this appointment")

        completed = self.lifecycle.mark_prescribed(prescription_data.appointment_id, commit=False)
        if not completed.ok:
            return completed

        prescription = Prescription(**prescription_data.model_dump())
        self.db.add(prescription)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return Reject(Rejection.DUPLICATE, detail="Prescription already exists for this appointment")

        self.db.refresh(prescription)
        logger.info(f"Saved prescription {prescription.id} for appointment {prescription.appointment_id}")
        return Ok(prescription)

    def get_prescription(self, appointment_id: int) -> Optional[Prescription]:
        return self.db.query(Prescription).filter(
            Prescription.appointment_id == appointment_id
        ).first()
