from datetime import date
from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from typing import List, Optional

from ..services.availability import slot_key

def _check_slots(slots: Optional[List[str]]) -> Optional[List[str]]:
    if slots is None:
        return slots
    for slot in slots:
        if slot_key(slot) is None:
            raise ValueError(f"Invalid availability slot: {slot!r}")
    return slots

class DoctorCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    specialty: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., pattern=r"^\d{10}$")
    available_times: List[str] = Field(default_factory=list)

    @field_validator("available_times")
    @classmethod
    def validate_slots(cls, value):
        return _check_slots(value)

class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    specialty: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    phone: Optional[str] = Field(None, pattern=r"^\d{10}$")
    available_times: Optional[List[str]] = None

    # Omit a field to leave it unchanged; only phone may be cleared
    @field_validator("name", "specialty", "email", "password", "available_times")
    @classmethod
    def reject_null(cls, value, info: ValidationInfo):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    @field_validator("available_times")
    @classmethod
    def validate_slots(cls, value):
        return _check_slots(value)

class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    specialty: str
    email: str
    phone: Optional[str] = None
    available_times: List[str] = []

class AvailabilityResponse(BaseModel):
    doctor_id: int
    date: date
    available_slots: List[str]
