"""
Domain errors raised by services and repositories.

The API layer translates these into HTTP responses; services never raise
HTTPException directly.
"""

from typing import List, Optional


class CareerBirdError(Exception):
    """Base class for domain errors."""


class WizardValidationError(CareerBirdError, ValueError):
    """A wizard step is missing required fields or holds malformed values."""

    def __init__(self, fields: List[str], message: Optional[str] = None):
        self.fields = list(fields)
        if message is None:
            message = f"Please complete the required fields: {', '.join(self.fields)}"
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)


class AuthenticationRequiredError(CareerBirdError):
    """No signed-in user is available for an operation that writes data."""

    def __init__(self, message: str = "Sign in to continue"):
        super().__init__(message)


class PersistenceError(CareerBirdError):
    """The relational store rejected a write or could not be reached."""

    def __init__(self, message: str = "Save failed, please retry"):
        super().__init__(message)


class NotFoundError(CareerBirdError):
    """A referenced record does not exist."""

    def __init__(self, resource: str, identifier=None):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found")


class InvalidTransitionError(CareerBirdError):
    """An application status change would move backwards or leave a terminal status."""
