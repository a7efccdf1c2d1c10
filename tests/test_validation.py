"""Tests for expense input validation."""

import pytest

from kharchaji.ledger.validation import (
    ERROR_EMPTY_DESCRIPTION,
    ERROR_EMPTY_PRICE,
    ERROR_INVALID_PRICE_FORMAT,
    ERROR_NEGATIVE_PRICE,
    ERROR_PRICE_TOO_LARGE,
    validate_expense,
)


def test_valid_expense():
    result = validate_expense("Milk", "45.50")
    assert result.is_valid
    assert result.error_code is None


@pytest.mark.parametrize(
    "description,price,code",
    [
        ("  ", "10", ERROR_EMPTY_DESCRIPTION),
        ("Milk", " ", ERROR_EMPTY_PRICE),
        ("Milk", "ten", ERROR_INVALID_PRICE_FORMAT),
        ("Milk", "nan", ERROR_INVALID_PRICE_FORMAT),
        ("Milk", "-1", ERROR_NEGATIVE_PRICE),
        ("Milk", "1000000001", ERROR_PRICE_TOO_LARGE),
    ],
)
def test_invalid_expense(description, price, code):
    result = validate_expense(description, price)
    assert not result.is_valid
    assert result.error_code == code
    assert result.error_message
