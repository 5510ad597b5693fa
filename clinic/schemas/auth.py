from datetime import datetime
from pydantic import BaseModel, Field

class LoginRequest(BaseModel):
    """Username for administrators, email for doctors and patients."""
    identifier: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    expires_at: datetime
    role: str

class SessionResponse(BaseModel):
    valid: bool = True
    principal_id: int
    role: str
