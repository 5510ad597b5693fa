from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from ..models.appointment import AppointmentStatus

class AppointmentCreate(BaseModel):
    doctor_id: int
    patient_id: int
    start_time: datetime
    reason: Optional[str] = Field(None, min_length=3, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)

class AppointmentUpdate(BaseModel):
    start_time: datetime
    doctor_id: Optional[int] = None
    reason: Optional[str] = Field(None, min_length=3, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    patient_id: int
    appointment_time: datetime
    end_time: datetime
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
