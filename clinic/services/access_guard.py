"""
Role-scoped authorization.

A request is authorized for role R when its token verifies and the token's
subject currently resolves to a principal in R's store. The lookup is never
cached: a principal deleted after the token was issued fails the next check.
"""
from dataclasses import dataclass
from typing import Union
import logging

from ..core.results import AuthFailure, Ok, Reject
from ..core.security import TokenAuthority, UserRole
from .credential_store import CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    principal_id: int
    role: UserRole
    identifier: str


class AccessGuard:
    def __init__(self, token_authority: TokenAuthority, credential_store: CredentialStore):
        self.token_authority = token_authority
        self.credential_store = credential_store

    def authorize(self, token: str, required_role: Union[UserRole, str]):
        """Return ``Ok(AuthResult)`` or ``Reject(AuthFailure)``."""
        verified = self.token_authority.verify(token)
        if not verified.ok:
            logger.info(f"Rejected token: {verified.reason.value}")
            return Reject(AuthFailure.INVALID_TOKEN, detail=verified.reason.value)

        role = required_role if isinstance(required_role, UserRole) else UserRole.parse(required_role)
        if role is None:
            return Reject(AuthFailure.ROLE_MISMATCH)

        principal = self.credential_store.find_principal(role, verified.value)
        if principal is None:
            logger.info(f"Token subject has no {role.value} principal")
            return Reject(AuthFailure.ROLE_MISMATCH)

        return Ok(AuthResult(principal.id, principal.role, principal.identifier))
