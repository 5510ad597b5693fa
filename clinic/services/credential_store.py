from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..core.security import UserRole
from ..models.admin import Admin
from ..models.doctor import Doctor
from ..models.patient import Patient


@dataclass(frozen=True)
class Principal:
    id: int
    role: UserRole
    identifier: str
    password_hash: str


class CredentialStore:
    """Read-only lookup of principals by identifier, one partition per role.

    Administrators are identified by username; doctors and patients by email.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_principal(self, role: UserRole, identifier: str) -> Optional[Principal]:
        """Resolve ``identifier`` in the store for ``role`` only."""
        if not identifier:
            return None

        if role == UserRole.ADMIN:
            admin = self.db.query(Admin).filter(Admin.username == identifier).first()
            if admin:
                return Principal(admin.id, UserRole.ADMIN, admin.username, admin.password_hash)
        elif role == UserRole.DOCTOR:
            doctor = self.db.query(Doctor).filter(Doctor.email == identifier).first()
            if doctor:
                return Principal(doctor.id, UserRole.DOCTOR, doctor.email, doctor.password_hash)
        elif role == UserRole.PATIENT:
            patient = self.db.query(Patient).filter(Patient.email == identifier).first()
            if patient:
                return Principal(patient.id, UserRole.PATIENT, patient.email, patient.password_hash)
        return None
