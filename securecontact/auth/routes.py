"""Authentication routes: admin login."""

import logging

from fastapi import APIRouter, Depends, Request, status
from jose import JWTError

from securecontact.auth.auth import AdminCredentials, create_admin_token
from securecontact.auth.dependencies import get_admin_credentials
from securecontact.auth.schemas import LoginRequest, TokenResponse
from securecontact.security.banlist import BanRegistry, ensure_not_banned
from securecontact.security.dependencies import get_ban_registry
from securecontact.shared.errors import AuthenticationError, ServiceError, ValidationError
from securecontact.shared.rate_limit_utils import get_client_ip, rate_limit

router = APIRouter(prefix="/api", tags=["auth"])


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(rate_limit("login"))],
)
async def login(
    request: Request,
    login_data: LoginRequest,
    admin_credentials: AdminCredentials = Depends(get_admin_credentials),
    ban_registry: BanRegistry = Depends(get_ban_registry),
):
    """Authenticate the admin and return an access token."""
    client_ip = get_client_ip(request)
    ensure_not_banned(ban_registry, client_ip)

    if not admin_credentials.configured:
        logging.error("Admin login attempted but admin authentication is not configured")
        raise ServiceError("Admin authentication not configured")

    if not login_data.password:
        ban_registry.record_failed_attempt(client_ip, "login")
        raise ValidationError("Password is required")

    if not admin_credentials.check_password(login_data.password):
        logging.warning(f"Failed login attempt from IP: {client_ip}")
        ban_registry.record_failed_attempt(client_ip, "login")
        raise AuthenticationError("Invalid credentials")

    ban_registry.clear_attempts(client_ip)

    try:
        token = create_admin_token(admin_credentials, client_ip)
    except (ValueError, JWTError) as e:
        logging.error(f"Failed to create admin token: {str(e)}")
        raise ServiceError("Internal server error")

    logging.info(f"Admin login successful from IP: {client_ip}")
    return TokenResponse(token=token, expires_in=admin_credentials.expires_in)
