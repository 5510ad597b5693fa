from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Callable

from ..core.database import get_db, get_redis
from ..core.config import settings
from ..core.results import ErrorKind, Reject
from ..core.security import (
    security, AuthenticationError, AuthorizationError,
    TokenAuthority, UserRole, get_token_authority
)
from ..services.access_guard import AccessGuard, AuthResult
from ..services.appointment_service import AppointmentLifecycleManager
from ..services.availability import AvailabilityCalculator
from ..services.booking_guard import BookingConflictGuard
from ..services.credential_store import CredentialStore

# Same message for every token or role failure
INVALID_SESSION = "Invalid or expired token"

def get_clock() -> Callable[[], datetime]:
    """Clinic-local wall clock used for booking decisions."""
    return datetime.now

def get_access_guard(
    db: Session = Depends(get_db),
    token_authority: TokenAuthority = Depends(get_token_authority)
) -> AccessGuard:
    return AccessGuard(token_authority, CredentialStore(db))

def get_lifecycle_manager(
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> AppointmentLifecycleManager:
    guard = BookingConflictGuard(db, AvailabilityCalculator(db), clock=clock)
    return AppointmentLifecycleManager(db, guard)

def get_bearer_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    """Extract the bearer token from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(INVALID_SESSION)
    return credentials.credentials

def authorize(token: str, role, guard: AccessGuard) -> AuthResult:
    result = guard.authorize(token, role)
    if not result.ok:
        raise AuthenticationError(INVALID_SESSION)
    return result.value

# Role-based access control dependencies
def require_role(role: UserRole):
    """Create a dependency that requires a valid session for ``role``."""
    async def role_checker(
        token: str = Depends(get_bearer_token),
        guard: AccessGuard = Depends(get_access_guard)
    ) -> AuthResult:
        return authorize(token, role, guard)

    return role_checker

get_admin = require_role(UserRole.ADMIN)
get_doctor = require_role(UserRole.DOCTOR)
get_patient = require_role(UserRole.PATIENT)

def raise_for_rejection(result: Reject):
    """Translate a rejected core result into the matching HTTP error."""
    kind = result.kind
    if kind == ErrorKind.UNAUTHORIZED:
        raise AuthenticationError(INVALID_SESSION)
    if kind == ErrorKind.FORBIDDEN:
        raise AuthorizationError(result.detail or result.reason.message)

    detail = result.detail or getattr(result.reason, "message", "Request failed")
    if kind == ErrorKind.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    if kind == ErrorKind.CONFLICT:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
    if kind == ErrorKind.INVALID_INPUT:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred"
    )

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Per-IP request budget for login and registration endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.LOGIN_RATE_WINDOW_SECONDS, 1)
    else:
        if int(current_requests) >= settings.LOGIN_RATE_LIMIT:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
