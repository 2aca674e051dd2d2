"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional

# Weekday keys used by the calendar front end, Sunday first
WEEKDAY_KEYS = ("So", "Mo", "Di", "Mi", "Do", "Fr", "Sa")


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number.

    Keeps a leading "+" and the digits, dropping spaces, dashes, dots and
    parentheses.

    Raises:
        ValueError: If the number has fewer than 6 or more than 15 digits
    """
    if not phone:
        return phone

    phone = phone.strip()
    prefix = "+" if phone.startswith("+") else ""
    digits = re.sub(r"\D", "", phone)

    if not 6 <= len(digits) <= 15:
        raise ValueError("Phone number must contain between 6 and 15 digits")

    return f"{prefix}{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_hex_color(color: str) -> str:
    """
    Validate a CSS hex color (#RGB or #RRGGBB).

    Returns:
        Lowercase color string

    Raises:
        ValueError: If the color is not a hex color
    """
    if not color or not re.match(r"^#(?:[0-9a-fA-F]{3}){1,2}$", color.strip()):
        raise ValueError("Color must be a hex color like #1e90ff")
    return color.strip().lower()


def validate_weekday_key(key: str) -> str:
    """Validate a weekday key against WEEKDAY_KEYS"""
    if key not in WEEKDAY_KEYS:
        raise ValueError(f"Unknown weekday '{key}', expected one of {', '.join(WEEKDAY_KEYS)}")
    return key


def weekday_key(day: date) -> str:
    """Weekday key for a calendar date"""
    # date.weekday() is Monday=0 .. Sunday=6
    return WEEKDAY_KEYS[(day.weekday() + 1) % 7]


def validate_not_blank(value: Optional[str], field_name: str) -> str:
    """Strip a required string and reject empty values"""
    if value is None or not value.strip():
        raise ValueError(f"{field_name} is required")
    return value.strip()
