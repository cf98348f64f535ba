"""
Input validation and sanitization utilities for contact submissions.
Validation raises ValidationError (HTTP 400); sanitization strips markup.
"""

import re
import html
from typing import Optional

from securecontact.shared.errors import ValidationError


# Length bounds for contact form fields
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 255
MIN_MESSAGE_LENGTH = 10
MAX_MESSAGE_LENGTH = 1000

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
TAG_PATTERN = re.compile(r'</?[A-Za-z!][^>]*>')
# Elements whose content is never text
SCRIPT_STYLE_PATTERN = re.compile(r'<(script|style)\b[^>]*>.*?</\1\s*>', re.IGNORECASE | re.DOTALL)


def strip_tags(text: str) -> str:
    """Remove HTML elements, dropping script/style bodies entirely."""
    text = SCRIPT_STYLE_PATTERN.sub('', text)
    return TAG_PATTERN.sub('', text)


def sanitize_text(text: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Sanitize text input to prevent XSS attacks.

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length (None for no limit)

    Returns:
        Text with markup removed and remaining HTML special characters escaped
    """
    if not text:
        return ""

    text = strip_tags(text.strip()).strip()

    # Cut before escaping so an entity is never split
    if max_length and len(text) > max_length:
        text = text[:max_length]

    # Stray brackets and ampersands are kept as text
    return html.escape(text, quote=False)


def normalize_email(email: str) -> str:
    """Trim and lowercase an email address."""
    return email.strip().lower()


def validate_name(name: Optional[str], field_name: str = "Name") -> str:
    """
    Validate a name field length (2-100 characters after trimming).

    Returns:
        The trimmed name

    Raises:
        ValidationError if validation fails
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{field_name} is required")

    name = name.strip()
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(f"{field_name} must be at least {MIN_NAME_LENGTH} characters")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"{field_name} must be no more than {MAX_NAME_LENGTH} characters")

    return name


def validate_email(email: Optional[str]) -> str:
    """
    Validate email address format and length.

    Returns:
        Normalized email (trimmed, lowercase)

    Raises:
        ValidationError if validation fails
    """
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("Email is required")

    email = normalize_email(email)

    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"Email must be no more than {MAX_EMAIL_LENGTH} characters")

    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")

    return email


def validate_message(message: Optional[str]) -> str:
    """Validate the message body length (10-1000 characters after trimming)."""
    if not isinstance(message, str) or not message.strip():
        raise ValidationError("Message is required")

    message = message.strip()
    if len(message) < MIN_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be at least {MIN_MESSAGE_LENGTH} characters")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must be no more than {MAX_MESSAGE_LENGTH} characters")

    return message
