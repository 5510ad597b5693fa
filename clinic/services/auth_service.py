from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..core.results import AuthFailure, Ok, Reject
from ..core.security import TokenAuthority, UserRole, get_token_authority, verify_password
from .credential_store import CredentialStore

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session, token_authority: Optional[TokenAuthority] = None):
        self.db = db
        self.credential_store = CredentialStore(db)
        self.token_authority = token_authority or get_token_authority()

    def login(self, role: UserRole, identifier: str, password: str):
        """Check credentials against the role's store and issue a session token.

        Returns ``Ok(SessionToken)`` or ``Reject(INVALID_CREDENTIALS)``; unknown
        identifiers and wrong passwords are indistinguishable to the caller.
        """
        principal = self.credential_store.find_principal(role, identifier)

        if not principal or not verify_password(password, principal.password_hash):
            logger.info(f"Failed {role.value} login")
            return Reject(AuthFailure.INVALID_CREDENTIALS)

        session_token = self.token_authority.issue(principal.identifier)
        logger.info(f"Issued {role.value} session for principal {principal.id}")
        return Ok(session_token)
