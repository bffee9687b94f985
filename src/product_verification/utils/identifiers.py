"""
Product identifier validation and formatting.
"""

from typing import Any

IDENTIFIER_LENGTH = 16
_ASCII_DIGITS = frozenset("0123456789")


def is_valid_identifier(value: Any) -> bool:
    """
    Check that a value is a product identifier: exactly 16 ASCII digits.

    No trimming or other normalization is applied; non-string input is
    simply invalid.
    """
    return (
        isinstance(value, str)
        and len(value) == IDENTIFIER_LENGTH
        and all(char in _ASCII_DIGITS for char in value)
    )


def format_identifier(identifier: str, group_size: int = 4) -> str:
    """Split an identifier into space separated digit groups for printing."""
    return " ".join(
        identifier[i:i + group_size] for i in range(0, len(identifier), group_size)
    )
