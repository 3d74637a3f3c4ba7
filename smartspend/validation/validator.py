"""
Input Validation Helpers

Every transition handler normalizes and checks its raw input through these
functions before touching state.

IMPORTANT: Validation NEVER silently fixes issues beyond trimming
whitespace. Anything else is rejected with ValidationError so the caller
can show it to the user.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from smartspend.errors import ValidationError
from smartspend.models.ledger import ALL_CATEGORIES, MAX_AMOUNT, Category

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
THEME_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")

MAX_DESCRIPTION_LENGTH = 200
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 254

# bcrypt only looks at the first 72 bytes of a secret
MAX_SECRET_BYTES = 72

AmountInput = Union[Decimal, int, float, str]


def require_text(value: Optional[str], field: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Strip and require a non-empty string."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required")
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} cannot exceed {max_length} characters")
    return cleaned


def validate_description(description: Optional[str]) -> str:
    return require_text(description, "Description", MAX_DESCRIPTION_LENGTH)


def parse_positive_amount(value: Optional[AmountInput], field: str = "Amount") -> Decimal:
    """
    Parse a monetary amount and require it to be a finite positive number.

    Floats go through str() so 0.1 stays 0.1 rather than its binary
    expansion.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive number")

    try:
        if isinstance(value, float):
            amount = Decimal(str(value))
        elif isinstance(value, str):
            amount = Decimal(value.strip())
        else:
            amount = Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a positive number")

    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field} must be a positive number")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")

    return amount


def normalize_email(email: Optional[str]) -> str:
    """Trim an email and check its shape. Case is preserved for display."""
    cleaned = (email or "").strip()
    if len(cleaned) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"Email cannot exceed {MAX_EMAIL_LENGTH} characters")
    if not EMAIL_PATTERN.match(cleaned):
        raise ValidationError(f"'{cleaned}' is not a valid email address")
    return cleaned


def validate_secret(secret: Optional[str]) -> str:
    if not secret:
        raise ValidationError("Password cannot be empty")
    if len(secret.encode("utf-8")) > MAX_SECRET_BYTES:
        raise ValidationError(f"Password cannot exceed {MAX_SECRET_BYTES} bytes")
    return secret


def validate_theme_color(color: Optional[str]) -> str:
    cleaned = (color or "").strip()
    if not THEME_COLOR_PATTERN.match(cleaned):
        raise ValidationError(f"'{cleaned}' is not a hex colour like #2563eb")
    return cleaned


def parse_category(value: Union[Category, str, None]) -> Category:
    """Accept a Category or its display value."""
    if isinstance(value, Category):
        return value
    try:
        return Category(value)
    except ValueError:
        raise ValidationError(f"Unknown category: {value}")


def parse_category_filter(value: Union[Category, str, None]) -> Optional[Category]:
    """None means 'All'."""
    if value is None or value == ALL_CATEGORIES:
        return None
    return parse_category(value)
