"""
Pydantic schemas for bulk import and bulk QR endpoints.
"""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field


class ImportSummaryResponse(BaseModel):
    """Per-file reconciliation summary."""

    total_rows: int = Field(description="Non-blank data rows in the file")
    inserted: int = Field(description="Products created")
    skipped_invalid: int = Field(description="Rows rejected by validation")
    skipped_duplicate: int = Field(description="Rows whose identifier already existed")
    errors: List[str] = Field(default_factory=list, description="First row diagnostics")


class BulkQRRequest(BaseModel):
    """Selection of products for a QR archive; empty means all products."""

    product_ids: Optional[List[str]] = Field(
        None,
        validation_alias=AliasChoices("product_ids", "productIds", "identifiers"),
        description="Product identifiers to include"
    )
