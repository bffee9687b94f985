"""
Tests for product identifier validation.
"""

import pytest

from product_verification.utils.identifiers import format_identifier, is_valid_identifier


@pytest.mark.parametrize("value", [
    "1234567812345678",
    "0000000000000000",
    "9999999999999999",
])
def test_valid_identifiers(value):
    """Sixteen ASCII digits are valid."""
    assert is_valid_identifier(value) is True


@pytest.mark.parametrize("value", [
    "",
    "123456781234567",        # 15 digits
    "12345678901234567",      # 17 digits
    "12345678-1234567",
    " 1234567812345678",
    "1234567812345678\n",
    "１２３４５６７８１２３４５６７８",  # full-width digits
    "١٢٣٤٥٦٧٨١٢٣٤٥٦٧٨",        # Arabic-Indic digits
    "abcdefghijklmnop",
])
def test_invalid_identifiers(value):
    """Anything other than exactly sixteen ASCII digits is invalid."""
    assert is_valid_identifier(value) is False


@pytest.mark.parametrize("value", [None, 1234567812345678, 1.5, b"1234567812345678", ["1234567812345678"]])
def test_non_string_input_is_invalid(value):
    """Validation is total: non-strings return False instead of raising."""
    assert is_valid_identifier(value) is False


def test_format_identifier_groups_digits():
    """Identifiers print in four-digit groups."""
    assert format_identifier("1234567812345678") == "1234 5678 1234 5678"
