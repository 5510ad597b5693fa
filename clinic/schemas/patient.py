from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional

class PatientRegister(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., pattern=r"^\d{10}$")
    address: Optional[str] = Field(None, max_length=255)

class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: str
    address: Optional[str] = None
