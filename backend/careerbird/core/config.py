"""
Application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # Database
    DATABASE_URL: str

    # Bearer tokens are issued by the hosted auth provider and signed with this secret
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    TOKEN_AUDIENCE: str = "authenticated"

    # Object storage
    STORAGE_URL: str = ""
    STORAGE_API_KEY: str = ""
    STORAGE_BUCKET: str = "tryouts"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10MB per upload

    # Scoring
    DEFAULT_GPA_SCALE: float = 4.0
    LEGACY_MATCH_SCORE: int = 98  # Shown when a profile and grant share no comparable fields

    # Frontend destination once the profile wizard is finished
    COMPLETION_REDIRECT: str = "/dashboard"

    # Application
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001,http://localhost:5173"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        origins = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
        # In production, filter out localhost origins
        if not self.DEBUG:
            origins = [origin for origin in origins if not origin.startswith("http://localhost")]
        return origins

    def validate_secret_key(self) -> bool:
        """Validate that SECRET_KEY is strong enough."""
        if len(self.SECRET_KEY) < 32:
            raise ValueError(
                f"SECRET_KEY must be at least 32 characters long. "
                f"Current length: {len(self.SECRET_KEY)}. "
                f"Use the JWT secret from the auth provider's project settings."
            )
        return True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra environment variables


settings = Settings()

# Validate SECRET_KEY strength in production
if not settings.DEBUG:
    try:
        settings.validate_secret_key()
    except ValueError as e:
        import warnings
        warnings.warn(str(e), UserWarning)
