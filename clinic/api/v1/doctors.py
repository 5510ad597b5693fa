from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import (
    authorize, get_access_guard, get_admin, get_bearer_token, raise_for_rejection
)
from ...services.access_guard import AccessGuard, AuthResult
from ...services.availability import AvailabilityCalculator
from ...services.doctor_service import DoctorService
from ...schemas.doctor import AvailabilityResponse, DoctorCreate, DoctorResponse, DoctorUpdate

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=List[DoctorResponse])
async def list_doctors(db: Session = Depends(get_db)):
    """List all doctors."""
    return DoctorService(db).list_doctors()

@router.get("/filter", response_model=List[DoctorResponse])
async def filter_doctors(
    name: Optional[str] = None,
    specialty: Optional[str] = None,
    time: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Filter doctors by name, specialty and AM/PM availability."""
    return DoctorService(db).filter_doctors(name=name, specialty=specialty, period=time)

@router.get("/{doctor_id}/availability/{role}/{day}", response_model=AvailabilityResponse)
async def get_availability(
    doctor_id: int,
    role: str,
    day: date,
    token: str = Depends(get_bearer_token),
    guard: AccessGuard = Depends(get_access_guard),
    db: Session = Depends(get_db)
):
    """Free slots of a doctor on a date, for any role declared in the path."""
    authorize(token, role, guard)

    result = AvailabilityCalculator(db).compute_free_slots(doctor_id, day)
    if not result.ok:
        raise_for_rejection(result)
    return AvailabilityResponse(doctor_id=doctor_id, date=day, available_slots=result.value)

@router.post("", response_model=DoctorResponse, status_code=201)
async def create_doctor(
    doctor_data: DoctorCreate,
    db: Session = Depends(get_db),
    _: AuthResult = Depends(get_admin)
):
    """Add a doctor (admin only)."""
    result = DoctorService(db).create_doctor(doctor_data)
    if not result.ok:
        raise_for_rejection(result)
    return result.value

@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: int,
    doctor_data: DoctorUpdate,
    db: Session = Depends(get_db),
    _: AuthResult = Depends(get_admin)
):
    """Update a doctor's details or availability template (admin only)."""
    result = DoctorService(db).update_doctor(doctor_id, doctor_data)
    if not result.ok:
        raise_for_rejection(result)
    return result.value

@router.delete("/{doctor_id}")
async def delete_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    _: AuthResult = Depends(get_admin)
):
    """Delete a doctor together with all of their appointments (admin only)."""
    result = DoctorService(db).delete_doctor(doctor_id)
    if not result.ok:
        raise_for_rejection(result)
    return {
        "message": "Doctor deleted successfully",
        "appointments_removed": result.value
    }
