from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from jose import jwt, jws
from jose.exceptions import JWSError
from passlib.context import CryptContext
from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from pydantic import BaseModel
from enum import Enum
import json

from .config import settings
from .results import Ok, Reject, TokenFailure

# Password hashing
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# JWT Security
security = HTTPBearer(auto_error=False)

# Session tokens are valid for a fixed window and are never revoked early.
TOKEN_TTL = timedelta(days=7)

class UserRole(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"

    @classmethod
    def parse(cls, value: str) -> Optional["UserRole"]:
        try:
            return cls(value.lower())
        except (ValueError, AttributeError):
            return None

class SessionToken(BaseModel):
    token: str
    subject: str
    issued_at: datetime
    expires_at: datetime

    @property
    def expires_in(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())

# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class TokenAuthority:
    """Issues and verifies stateless HS256 session tokens.

    Tokens carry only ``sub``, ``iat`` and ``exp``. The role is not embedded;
    callers re-resolve the subject against the store for the role they need.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.clock = clock

    def issue(self, subject: str) -> SessionToken:
        """Create a signed token for ``subject`` valid for seven days."""
        issued_at = int(self.clock().timestamp())
        expires_at = issued_at + int(TOKEN_TTL.total_seconds())

        encoded_jwt = jwt.encode(
            {"sub": subject, "iat": issued_at, "exp": expires_at},
            self.secret_key,
            algorithm=self.algorithm
        )
        return SessionToken(
            token=encoded_jwt,
            subject=subject,
            issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        )

    def verify(self, token: str):
        """Return ``Ok(subject)`` or ``Reject(TokenFailure)``.

        The signature is checked before any claim is trusted; expiry is a
        strict comparison against the clock with no leeway.
        """
        if not token or not isinstance(token, str):
            return Reject(TokenFailure.MALFORMED)

        # Structure and algorithm first, so a failed verify below can only
        # mean the signature does not match.
        try:
            header = jws.get_unverified_header(token)
        except JWSError:
            return Reject(TokenFailure.MALFORMED)
        if header.get("alg") != self.algorithm:
            return Reject(TokenFailure.MALFORMED)

        try:
            payload = jws.verify(token, self.secret_key, algorithms=[self.algorithm])
        except JWSError:
            return Reject(TokenFailure.SIGNATURE_INVALID)

        try:
            claims = json.loads(payload)
        except ValueError:
            return Reject(TokenFailure.MALFORMED)

        if not isinstance(claims, dict):
            return Reject(TokenFailure.MALFORMED)

        subject = claims.get("sub")
        expires_at = claims.get("exp")
        issued_at = claims.get("iat")
        if not isinstance(subject, str) or not subject:
            return Reject(TokenFailure.MALFORMED)
        if not _is_timestamp(expires_at) or not _is_timestamp(issued_at):
            return Reject(TokenFailure.MALFORMED)

        if self.clock().timestamp() >= expires_at:
            return Reject(TokenFailure.EXPIRED)

        return Ok(subject)

def _is_timestamp(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)

def get_token_authority() -> TokenAuthority:
    """Token authority keyed with the process-wide secret."""
    return TokenAuthority(settings.SECRET_KEY, settings.ALGORITHM)

# Security exceptions
class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )
