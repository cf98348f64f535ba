"""Runtime settings read from environment variables (optionally a .env file)."""

from typing import Any, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from securecontact.shared.errors import FailurePolicy


class Settings(BaseSettings):
    """Service settings. Empty or blank values in the environment count as unset."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    encryption_key: Optional[str] = None
    jwt_secret: Optional[str] = None
    jwt_expire_hours: int = 24
    admin_password_hash: Optional[str] = None
    admin_password: Optional[str] = None
    recaptcha_secret_key: Optional[str] = None
    recaptcha_min_score: float = 0.5
    max_failed_attempts: int = 5
    ban_duration_hours: int = 24
    ban_sweep_interval_seconds: int = 3600
    ban_check_policy: FailurePolicy = FailurePolicy.FAIL_OPEN
    scanner_policy: FailurePolicy = FailurePolicy.FAIL_OPEN
    contact_rate_limit_max_requests: int = 3
    contact_rate_limit_window_seconds: int = 60
    login_rate_limit_max_requests: int = 5
    login_rate_limit_window_seconds: int = 15 * 60
    frontend_url: str = "http://localhost:3000"

    @field_validator(
        "encryption_key",
        "jwt_secret",
        "admin_password_hash",
        "admin_password",
        "recaptcha_secret_key",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("ban_check_policy", "scanner_policy", mode="before")
    @classmethod
    def parse_policy(cls, v: Any) -> Any:
        """Accept fail_open / fail_closed in any case."""
        if isinstance(v, str):
            return FailurePolicy.parse(v, FailurePolicy.FAIL_OPEN)
        return v

    @property
    def encryption_enabled(self) -> bool:
        return bool(self.encryption_key)

    @property
    def recaptcha_enabled(self) -> bool:
        return bool(self.recaptcha_secret_key)


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings()
