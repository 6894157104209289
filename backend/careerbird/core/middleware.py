"""
Security middleware for rate limiting, audit logging, and request tracking.
"""

import logging
from typing import Callable
from urllib.parse import urlparse

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError

from careerbird.db.database import SessionLocal
from careerbird.db import models
from careerbird.core.config import settings
from careerbird.core.security import decode_access_token

logger = logging.getLogger(__name__)

# Rate limiter instance
limiter = Limiter(key_func=get_remote_address)

SKIP_AUDIT_PATHS = ["/health", "/docs", "/openapi.json", "/redoc"]


class AuditLogMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests for audit purposes."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in SKIP_AUDIT_PATHS:
            return await call_next(request)

        # The token subject is the user id; an invalid token just means an anonymous entry
        user_id = None
        authorization = request.headers.get("authorization", "")
        if authorization.lower().startswith("bearer "):
            payload = decode_access_token(authorization[7:].strip())
            if payload:
                user_id = payload.get("sub")

        action = f"{request.method}_{request.url.path.replace('/', '_').replace('-', '_')}"
        if action.startswith("_"):
            action = action[1:]

        db = SessionLocal()
        try:
            db.add(models.AuditLog(
                user_id=user_id,
                action=action[:100],
                ip_address=get_remote_address(request),
                user_agent=request.headers.get("user-agent", ""),
                log_metadata={
                    "method": request.method,
                    "path": str(request.url.path),
                    "query_params": str(request.query_params),
                },
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            # Audit failures never fail the request
            logger.warning(f"Audit logging error: {e}")
        finally:
            db.close()

        return await call_next(request)


def get_rate_limiter():
    """Get the rate limiter instance."""
    return limiter


class CSRFProtectionMiddleware(BaseHTTPMiddleware):
    """
    Origin/Referer check for state-changing requests outside DEBUG.

    Bearer tokens are sent in headers, not cookies, so this is a second
    line behind CORS rather than the main defence.
    """

    UNSAFE_METHODS = {"POST", "PUT", "DELETE", "PATCH"}

    SKIP_PATHS = ["/health", "/docs", "/openapi.json", "/redoc"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method not in self.UNSAFE_METHODS:
            return await call_next(request)

        if any(request.url.path.startswith(path) for path in self.SKIP_PATHS):
            return await call_next(request)

        allowed_origins = settings.cors_origins_list
        if not allowed_origins or settings.DEBUG:
            return await call_next(request)

        source = request.headers.get("origin") or request.headers.get("referer")
        if not source:
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": "CSRF protection: Missing Origin or Referer header"},
            )

        parsed = urlparse(source)
        if f"{parsed.scheme}://{parsed.netloc}" not in allowed_origins:
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": "CSRF protection: Origin not allowed"},
            )
        return await call_next(request)
