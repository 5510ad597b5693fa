from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

class PrescriptionCreate(BaseModel):
    appointment_id: int
    patient_name: str = Field(..., min_length=3, max_length=100)
    medication: str = Field(..., min_length=3, max_length=100)
    dosage: str = Field(..., min_length=1, max_length=50)
    doctor_notes: Optional[str] = Field(None, max_length=200)

class PrescriptionResponse(PrescriptionCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
