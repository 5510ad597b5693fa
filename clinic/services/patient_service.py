from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..core.results import Ok, Reject, Rejection
from ..core.security import get_password_hash
from ..models.patient import Patient
from ..schemas.patient import PatientRegister

logger = logging.getLogger(__name__)

class PatientService:
    def __init__(self, db: Session):
        self.db = db

    def register_patient(self, patient_data: PatientRegister):
        """Register a new patient; email and phone must both be unused."""
        existing = self.db.query(Patient).filter(
            or_(Patient.email == patient_data.email, Patient.phone == patient_data.phone)
        ).first()
        if existing:
            return Reject(Rejection.DUPLICATE, detail="Patient with email or phone number already exist")

        patient = Patient(
            name=patient_data.name,
            email=patient_data.email,
            password_hash=get_password_hash(patient_data.password),
            phone=patient_data.phone,
            address=patient_data.address,
        )
        self.db.add(patient)
        self.db.commit()
        self.db.refresh(patient)

        logger.info(f"Registered patient {patient.id}")
        return Ok(patient)

    def get_patient(self, patient_id: int) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.id == patient_id).first()
