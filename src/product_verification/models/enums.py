"""
Enumerations shared by models, schemas and services.
"""

from enum import Enum


class ProductStatus(str, Enum):
    """Lifecycle status of a product."""
    ACTIVE = "active"
    INVALID = "invalid"


class VerificationStatus(str, Enum):
    """Outcome category of a verification request."""
    VERIFIED = "verified"
    LAST_VALID = "last_valid"
    INVALID = "invalid"


class InvalidReason(str, Enum):
    """Why a verification request was answered with ``invalid``."""
    MALFORMED_IDENTIFIER = "malformed_identifier"
    NOT_FOUND = "not_found"
    EXHAUSTED = "exhausted"


class ScanOutcome(str, Enum):
    """Result of an attempt to consume one unit of scan budget."""
    CONSUMED = "consumed"
    EXHAUSTED = "exhausted"
    NOT_FOUND = "not_found"
