"""Pydantic schemas for contact API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ContactRequest(BaseModel):
    """
    Schema for contact form submission.

    Field contents are validated by the intake pipeline so that bad input is
    answered with 400 like every other rejection.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None
    honeypot: Optional[str] = Field(default=None, alias="_honey", description="Hidden field; must stay empty")
    recaptcha_token: Optional[str] = Field(default=None, alias="recaptchaToken")


class ContactResponse(BaseModel):
    """Schema for contact form response."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    message: str = "Message sent successfully"
    id: str
    created_at: datetime
    encrypted: bool
