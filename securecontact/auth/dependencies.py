"""Admin authentication dependencies for protected routes."""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from securecontact.auth.auth import ADMIN_ROLE, AdminCredentials, verify_token
from securecontact.shared.errors import AuthenticationError, ForbiddenError

# auto_error=False so a missing header is answered by verify_admin with our own error body
security = HTTPBearer(auto_error=False)


def get_admin_credentials(request: Request) -> AdminCredentials:
    return request.app.state.admin_credentials


def verify_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    admin_credentials: AdminCredentials = Depends(get_admin_credentials),
) -> dict:
    """
    Require a valid admin bearer token.

    Returns the decoded token payload.
    Raises 401 when no token is sent and 403 when it is invalid, expired or not an admin token.
    """
    if credentials is None:
        raise AuthenticationError(
            "Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(credentials.credentials, admin_credentials.jwt_secret)
    if payload is None:
        raise ForbiddenError("Invalid or expired token")

    if payload.get("role") != ADMIN_ROLE:
        raise ForbiddenError("Admin access required")

    return payload
