from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import AuthenticationError, TokenAuthority, UserRole, get_token_authority
from ...api.deps import (
    INVALID_SESSION, authorize, get_access_guard, get_bearer_token, rate_limit_check
)
from ...services.access_guard import AccessGuard
from ...services.auth_service import AuthService
from ...schemas.auth import LoginRequest, SessionResponse, TokenResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/{role}/login", response_model=TokenResponse)
async def login(
    role: UserRole,
    login_data: LoginRequest,
    db: Session = Depends(get_db),
    token_authority: TokenAuthority = Depends(get_token_authority),
    _: None = Depends(rate_limit_check)
):
    """Authenticate an administrator, doctor or patient and issue a session token."""
    auth_service = AuthService(db, token_authority)
    result = auth_service.login(role, login_data.identifier, login_data.password)
    if not result.ok:
        raise AuthenticationError("Invalid identifier or password")

    session_token = result.value
    return TokenResponse(
        access_token=session_token.token,
        expires_in=session_token.expires_in,
        expires_at=session_token.expires_at,
        role=role.value
    )

@router.post("/{role}/verify-token", response_model=SessionResponse)
async def verify_token_endpoint(
    role: str,
    token: str = Depends(get_bearer_token),
    guard: AccessGuard = Depends(get_access_guard)
):
    """Check whether the bearer token is a live session for ``role``."""
    if UserRole.parse(role) is None:
        raise AuthenticationError(INVALID_SESSION)

    auth = authorize(token, role, guard)
    return SessionResponse(principal_id=auth.principal_id, role=auth.role.value)
