from datetime import date
from fastapi import APIRouter, Depends
from typing import List, Optional

from ...core.security import AuthorizationError
from ...api.deps import get_doctor, get_lifecycle_manager, get_patient, raise_for_rejection
from ...services.access_guard import AuthResult
from ...services.appointment_service import AppointmentLifecycleManager
from ...schemas.appointment import AppointmentCreate, AppointmentResponse, AppointmentUpdate

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.post("", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    appointment_data: AppointmentCreate,
    current_patient: AuthResult = Depends(get_patient),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager)
):
    """Book an appointment for the authenticated patient."""
    if appointment_data.patient_id != current_patient.principal_id:
        raise AuthorizationError("Patients may only book appointments for themselves")

    result = manager.book(
        doctor_id=appointment_data.doctor_id,
        patient_id=appointment_data.patient_id,
        start_time=appointment_data.start_time,
        reason=appointment_data.reason,
        notes=appointment_data.notes
    )
    if not result.ok:
        raise_for_rejection(result)
    return result.value

@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    appointment_data: AppointmentUpdate,
    current_patient: AuthResult = Depends(get_patient),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager)
):
    """Reschedule one of the authenticated patient's appointments."""
    result = manager.reschedule(
        appointment_id,
        current_patient.principal_id,
        appointment_data.start_time,
        doctor_id=appointment_data.doctor_id,
        reason=appointment_data.reason,
        notes=appointment_data.notes
    )
    if not result.ok:
        raise_for_rejection(result)
    return result.value

@router.delete("/{appointment_id}", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    current_patient: AuthResult = Depends(get_patient),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager)
):
    """Cancel one of the authenticated patient's appointments."""
    result = manager.cancel(appointment_id, current_patient.principal_id)
    if not result.ok:
        raise_for_rejection(result)
    return result.value

@router.get("/doctor/{day}", response_model=List[AppointmentResponse])
async def list_doctor_appointments(
    day: date,
    patient_name: Optional[str] = None,
    current_doctor: AuthResult = Depends(get_doctor),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager)
):
    """The authenticated doctor's appointments on a date."""
    return manager.list_for_doctor(current_doctor.principal_id, day, patient_name)
