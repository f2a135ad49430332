"""Field rules shared by every handler that creates or updates a record."""
import re
import uuid
from typing import Optional

from sschool.core.exceptions import InvalidIdError, ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def clean(value: Optional[str]) -> Optional[str]:
    """Trim a text field, keeping None as None"""
    if value is None:
        return None
    return value.strip()


def require(message: str, *values: Optional[str]) -> None:
    """Reject the request unless every value is present and non-blank"""
    for value in values:
        if value is None or not str(value).strip():
            raise ValidationError(message)


def normalize_email(value: str) -> str:
    email = value.strip()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please provide a valid email address")
    return email.lower()


def check_password(value: str) -> str:
    # Passwords are stored hashed as given; whitespace is significant
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return value


def parse_id(value: str, label: str) -> str:
    """Canonical store key for a path id, or InvalidIdError if it is not one"""
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError, AttributeError):
        raise InvalidIdError(f"Invalid {label} ID")
