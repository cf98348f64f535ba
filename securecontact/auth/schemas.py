"""Pydantic schemas for admin authentication requests and responses."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional


class LoginRequest(BaseModel):
    """Login request schema. A missing password is answered with 400."""
    password: Optional[str] = None


class TokenResponse(BaseModel):
    """Token response schema."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    token: str
    token_type: str = "bearer"
    message: str = "Login successful"
    expires_in: str
