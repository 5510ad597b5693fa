from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.results import Reject, Rejection
from ...api.deps import get_doctor, get_lifecycle_manager, raise_for_rejection
from ...services.access_guard import AuthResult
from ...services.appointment_service import AppointmentLifecycleManager
from ...services.prescription_service import PrescriptionService
from ...schemas.prescription import PrescriptionCreate, PrescriptionResponse

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])

@router.post("", response_model=PrescriptionResponse, status_code=201)
async def save_prescription(
    prescription_data: PrescriptionCreate,
    db: Session = Depends(get_db),
    _: AuthResult = Depends(get_doctor),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager)
):
    """Save a prescription and mark its appointment completed (doctor only)."""
    result = PrescriptionService(db, manager).save_prescription(prescription_data)
    if not result.ok:
        raise_for_rejection(result)
    return result.value

@router.get("/{appointment_id}", response_model=PrescriptionResponse)
async def get_prescription(
    appointment_id: int,
    db: Session = Depends(get_db),
    _: AuthResult = Depends(get_doctor)
):
    """Prescription issued for an appointment (doctor only)."""
    prescription = PrescriptionService(db).get_prescription(appointment_id)
    if not prescription:
        raise_for_rejection(Reject(Rejection.PRESCRIPTION_NOT_FOUND))
    return prescription
