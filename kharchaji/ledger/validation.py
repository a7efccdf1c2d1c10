"""Validation of user-entered expense fields."""

from __future__ import annotations

import math
from dataclasses import dataclass

ERROR_EMPTY_DESCRIPTION = 1
ERROR_EMPTY_PRICE = 2
ERROR_INVALID_PRICE_FORMAT = 3
ERROR_PRICE_TOO_LARGE = 4
ERROR_NEGATIVE_PRICE = 5

MAX_PRICE = 1_000_000_000


@dataclass
class ValidationResult:
    is_valid: bool
    error_code: int | None = None
    error_message: str | None = None


def validate_expense(description: str, price: str) -> ValidationResult:
    """Check a description and raw price string before encoding."""
    if not description.strip():
        return ValidationResult(False, ERROR_EMPTY_DESCRIPTION, "Description cannot be empty")
    if not price.strip():
        return ValidationResult(False, ERROR_EMPTY_PRICE, "Price cannot be empty")

    try:
        value = float(price)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        return ValidationResult(
            False, ERROR_INVALID_PRICE_FORMAT, "Price must be a valid number"
        )

    if value < 0:
        return ValidationResult(False, ERROR_NEGATIVE_PRICE, "Price cannot be negative")
    if value > MAX_PRICE:
        return ValidationResult(False, ERROR_PRICE_TOO_LARGE, "Price is unreasonably large")

    return ValidationResult(True)
