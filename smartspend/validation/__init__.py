"""Validation package."""

from smartspend.validation.ids import IdGenerator, SequentialIdGenerator
from smartspend.validation.validator import (
    normalize_email,
    parse_category,
    parse_category_filter,
    parse_positive_amount,
    require_text,
    validate_description,
    validate_secret,
    validate_theme_color,
)

__all__ = [
    "IdGenerator",
    "SequentialIdGenerator",
    "normalize_email",
    "parse_category",
    "parse_category_filter",
    "parse_positive_amount",
    "require_text",
    "validate_description",
    "validate_secret",
    "validate_theme_color",
]
