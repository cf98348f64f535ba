"""Authentication utilities: admin password hashing and JWT token handling."""

import bcrypt
import logging
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Optional

ALGORITHM = "HS256"
ADMIN_SUBJECT = "admin"
ADMIN_ROLE = "admin"
ADMIN_FEATURES = ["read_messages", "delete_messages", "manage_bans"]
BCRYPT_ROUNDS = 12


def _bcrypt_bytes(password: str) -> bytes:
    """Encode a password for bcrypt, which only uses the first 72 bytes."""
    password_bytes = password.encode('utf-8')
    if len(password_bytes) > 72:
        truncated = password_bytes[:72]
        # Remove any incomplete trailing multi-byte character
        while truncated and truncated[-1] & 0x80 and not (truncated[-1] & 0x40):
            truncated = truncated[:-1]
        password_bytes = truncated
    return password_bytes


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_bcrypt_bytes(password), salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(_bcrypt_bytes(plain_password), hashed_password.encode('utf-8'))
    except ValueError:
        logging.error("Stored admin password hash is not a valid bcrypt hash")
        return False


class AdminCredentials:
    """
    The admin password hash and token signing settings.

    The hash is computed once, so each login costs exactly one bcrypt check.
    """

    def __init__(self, password_hash: Optional[str], jwt_secret: Optional[str], expire_hours: int = 24):
        self.password_hash = password_hash
        self.jwt_secret = jwt_secret
        self.expire_hours = expire_hours

    @classmethod
    def from_settings(cls, settings) -> "AdminCredentials":
        password_hash = settings.admin_password_hash
        if not password_hash and settings.admin_password:
            password_hash = hash_password(settings.admin_password)
        if not password_hash:
            logging.warning(
                "Neither ADMIN_PASSWORD_HASH nor ADMIN_PASSWORD is set. Admin login is disabled."
            )
        if not settings.jwt_secret:
            logging.warning(
                "JWT_SECRET environment variable is not set. "
                "Admin token operations will fail. "
                "Please set JWT_SECRET to a secure random string."
            )
        return cls(password_hash, settings.jwt_secret, settings.jwt_expire_hours)

    @property
    def configured(self) -> bool:
        return bool(self.password_hash and self.jwt_secret)

    @property
    def expires_in(self) -> str:
        return f"{self.expire_hours}h"

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return verify_password(password, self.password_hash)


def create_access_token(data: dict, secret_key: str, expires_delta: timedelta) -> str:
    """Create a signed JWT access token."""
    if not secret_key:
        raise ValueError("JWT_SECRET environment variable is required for token creation.")
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    to_encode.update({"exp": now + expires_delta, "iat": now, "type": "access"})
    return jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)


def create_admin_token(credentials: AdminCredentials, client_ip: Optional[str] = None) -> str:
    data = {
        "sub": ADMIN_SUBJECT,
        "role": ADMIN_ROLE,
        "features": ADMIN_FEATURES,
    }
    if client_ip:
        data["ip"] = client_ip
    return create_access_token(data, credentials.jwt_secret, timedelta(hours=credentials.expire_hours))


def verify_token(token: str, secret_key: Optional[str], token_type: Optional[str] = "access") -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string
        secret_key: Signing secret
        token_type: Token type to require (None to skip the check)

    Returns:
        Decoded token payload or None if invalid
    """
    if not secret_key:
        logging.error("JWT_SECRET is not set. Cannot verify token.")
        return None
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
        if token_type and payload.get("type") != token_type:
            return None
        return payload
    except JWTError:
        return None
