"""
Session dependencies.

Accounts live with the hosted auth provider; these dependencies verify its
bearer tokens and hand routers an explicit SessionContext.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from careerbird.core.security import ANONYMOUS, SessionContext, decode_access_token, session_from_claims

router = APIRouter()
bearer_scheme = HTTPBearer(auto_error=False)


class SessionResponse(BaseModel):
    user_id: Optional[str]
    role: str
    email: Optional[str]
    is_authenticated: bool


def get_session(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> SessionContext:
    """Session for the request; anonymous when no token is sent."""
    if credentials is None:
        return ANONYMOUS

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session_from_claims(payload)


def get_current_session(session: SessionContext = Depends(get_session)) -> SessionContext:
    """Require a signed-in user."""
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in to continue",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


def require_professor(session: SessionContext = Depends(get_current_session)) -> SessionContext:
    """Require professor (or admin) access."""
    if not session.is_professor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Professor access required"
        )
    return session


@router.get("/session", response_model=SessionResponse)
async def read_session(session: SessionContext = Depends(get_session)):
    """Identity carried by the caller's token (anonymous without one)."""
    return SessionResponse(
        user_id=session.user_id,
        role=session.role,
        email=session.email,
        is_authenticated=session.is_authenticated,
    )
