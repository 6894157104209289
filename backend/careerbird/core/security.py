"""
Bearer token verification and the per-request session context.

Sign-up, sign-in and token issuance belong to the hosted auth provider.
This module only verifies the tokens it issues and exposes the identity
they carry.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

import jwt

from careerbird.core.config import settings
from careerbird.core.exceptions import AuthenticationRequiredError

logger = logging.getLogger(__name__)

ROLES = ("student", "professor", "admin")


@dataclass(frozen=True)
class SessionContext:
    """Identity of the caller, passed explicitly to every operation that needs it."""
    user_id: Optional[str] = None
    role: str = "student"
    email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def is_professor(self) -> bool:
        return self.role in ("professor", "admin")

    def require_user(self) -> str:
        """Return the user id or raise before any write is attempted."""
        if not self.user_id:
            raise AuthenticationRequiredError()
        return self.user_id


ANONYMOUS = SessionContext()


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify a bearer token. Returns None when it is invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.TOKEN_AUDIENCE,
        )
    except jwt.PyJWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None


def create_access_token(
    user_id: str,
    role: str = "student",
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Mint a token in the same shape the auth provider issues.

    Used by local tooling and tests; production tokens come from the provider.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    payload = {
        "sub": user_id,
        "aud": settings.TOKEN_AUDIENCE,
        "exp": expire,
        "user_metadata": {"role": role},
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def session_from_claims(payload: Optional[Dict[str, Any]]) -> SessionContext:
    """Build a SessionContext from decoded token claims."""
    if not payload or not payload.get("sub"):
        return ANONYMOUS

    role = None
    for key in ("user_metadata", "app_metadata"):
        metadata = payload.get(key) or {}
        if isinstance(metadata, dict) and metadata.get("role") in ROLES:
            role = metadata["role"]
            break

    return SessionContext(
        user_id=str(payload["sub"]),
        role=role or "student",
        email=payload.get("email"),
    )
