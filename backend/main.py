"""
CareerBird Backend API

FastAPI application for the scholarship and grant marketplace.
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from contextlib import asynccontextmanager
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import traceback
import logging

from careerbird.core.config import settings
from careerbird.core.exceptions import (
    AuthenticationRequiredError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    WizardValidationError,
)
from careerbird.core.middleware import AuditLogMiddleware, CSRFProtectionMiddleware, get_rate_limiter
from careerbird.api.v1 import api_router
from careerbird.db.database import engine
from careerbird.db import models

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown."""
    models.Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="CareerBird API",
    description="Scholarship and grant marketplace API",
    version="1.0.0",
    lifespan=lifespan,
)

# Rate limiter
limiter = get_rate_limiter()
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# Domain errors: stay on the current step and say what is wrong
@app.exception_handler(WizardValidationError)
async def validation_error_handler(request: Request, exc: WizardValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": {"message": exc.message, "fields": exc.fields}},
    )


@app.exception_handler(AuthenticationRequiredError)
async def authentication_error_handler(request: Request, exc: AuthenticationRequiredError):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc), "retry": True},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})


# Global exception handler to ensure CORS headers in error responses
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler that ensures CORS headers are included."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    if settings.DEBUG:
        error_detail = str(exc)
        error_detail += f"\n{traceback.format_exc()}"
    else:
        error_detail = "An internal error occurred. Please contact support if this persists."

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": error_detail},
        headers={
            "Access-Control-Allow-Origin": request.headers.get("origin", "*"),
            "Access-Control-Allow-Credentials": "true",
            "Access-Control-Allow-Methods": "*",
            "Access-Control-Allow-Headers": "*",
        }
    )


# HTTPS enforcement middleware (production only)
@app.middleware("http")
async def https_redirect_middleware(request: Request, call_next):
    """Redirect HTTP to HTTPS in production."""
    # Internal health checks use plain HTTP
    if request.url.path == "/health":
        return await call_next(request)

    if not settings.DEBUG and request.url.scheme != "https":
        https_url = str(request.url).replace("http://", "https://", 1)
        return RedirectResponse(url=https_url, status_code=301)
    return await call_next(request)


# Security headers middleware
@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    # HSTS header (HTTPS only, production only)
    if not settings.DEBUG and request.url.scheme == "https":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"

    return response

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(CSRFProtectionMiddleware)

# Audit logging middleware
app.add_middleware(AuditLogMiddleware)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "CareerBird API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(api_router, prefix="/api/v1")
