from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_lifecycle_manager, get_patient, raise_for_rejection, rate_limit_check
from ...services.access_guard import AuthResult
from ...services.appointment_service import AppointmentLifecycleManager
from ...services.patient_service import PatientService
from ...schemas.appointment import AppointmentResponse
from ...schemas.patient import PatientRegister, PatientResponse

router = APIRouter(prefix="/patients", tags=["Patients"])

@router.post("", response_model=PatientResponse, status_code=201)
async def register_patient(
    patient_data: PatientRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new patient."""
    result = PatientService(db).register_patient(patient_data)
    if not result.ok:
        raise_for_rejection(result)
    return result.value

@router.get("/me", response_model=PatientResponse)
async def get_patient_details(
    current_patient: AuthResult = Depends(get_patient),
    db: Session = Depends(get_db)
):
    """Profile of the authenticated patient."""
    patient = PatientService(db).get_patient(current_patient.principal_id)
    if not patient:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Patient not found"
        )
    return patient

@router.get("/me/appointments", response_model=List[AppointmentResponse])
async def get_patient_appointments(
    condition: Optional[str] = None,
    doctor_name: Optional[str] = None,
    current_patient: AuthResult = Depends(get_patient),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager)
):
    """The authenticated patient's appointments, optionally past/future or by doctor."""
    result = manager.list_for_patient(current_patient.principal_id, condition, doctor_name)
    if not result.ok:
        raise_for_rejection(result)
    return result.value
