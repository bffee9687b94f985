"""
Pydantic schemas for the public verification endpoint.
"""

from typing import Optional

from pydantic import BaseModel, Field

from ....models.enums import InvalidReason, VerificationStatus


class VerificationResponse(BaseModel):
    """Outcome of a verification request."""

    status: VerificationStatus = Field(description="verified, last_valid or invalid")
    message: str = Field(description="Human-readable status line")
    reason: Optional[InvalidReason] = Field(None, description="Why the request was invalid")
    identifier: Optional[str] = Field(None, description="Product identifier")
    scan_count: Optional[int] = Field(None, description="Scans consumed so far")
    scan_budget: Optional[int] = Field(None, description="Total permitted scans")

    @property
    def is_successful(self) -> bool:
        return self.status in (VerificationStatus.VERIFIED, VerificationStatus.LAST_VALID)
