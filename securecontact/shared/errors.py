"""Error types shared by the intake, admin and security layers.

Every error that reaches a client is an ``HTTPException`` carrying a dict
detail of the form ``{"error": ..., **extra}``; the app-level exception
handlers render that dict as the response body.
"""

from enum import Enum
from typing import Any, Optional
from fastapi import HTTPException, status


class FailurePolicy(str, Enum):
    """What a collaborator does when its own machinery breaks."""
    FAIL_OPEN = "fail_open"  # permit the action
    FAIL_CLOSED = "fail_closed"  # refuse the action

    @classmethod
    def parse(cls, value: Optional[str], default: "FailurePolicy") -> "FailurePolicy":
        if not value:
            return default
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown failure policy '{value}'. Use 'fail_open' or 'fail_closed'.")


class ServiceError(HTTPException):
    """Base class for errors surfaced to API callers."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "Internal server error"

    def __init__(self, error: Optional[str] = None, headers: Optional[dict] = None, **extra: Any):
        detail = {"error": error or self.default_error}
        detail.update(extra)
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)

    @property
    def error(self) -> str:
        return self.detail["error"]


class ValidationError(ServiceError):
    """Bad input shape or length."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_error = "Invalid submission"


class AuthenticationError(ServiceError):
    """Missing or wrong credential."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_error = "Authentication required"


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_error = "Access denied"


class BanError(ServiceError):
    """The client is on the ban list."""
    status_code = status.HTTP_403_FORBIDDEN
    default_error = "Access denied"


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_error = "Not found"


class StoreFailure(ServiceError):
    """The relational store could not be read or written."""


class ScannerFailure(ServiceError):
    """The content scanner broke and is configured to fail closed."""
