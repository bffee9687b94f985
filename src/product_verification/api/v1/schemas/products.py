"""
Pydantic schemas for product API endpoints.
"""

from datetime import datetime
from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ....models.enums import ProductStatus


class ProductCreateRequest(BaseModel):
    """Request model for creating a single product."""

    identifier: str = Field(
        validation_alias=AliasChoices("identifier", "product_id", "productId"),
        description="16-digit product identifier"
    )
    name: str = Field(
        validation_alias=AliasChoices("name", "product_name", "productName"),
        description="Product display name"
    )


class ProductStatusUpdateRequest(BaseModel):
    """Request model for the administrative status toggle."""

    status: ProductStatus = Field(description="New product status")


class ProductResponse(BaseModel):
    """Response model for product data."""

    model_config = ConfigDict(from_attributes=True)

    identifier: str
    name: str
    scan_count: int
    scan_budget: int
    status: ProductStatus
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    """Response model for paginated product lists."""

    products: List[ProductResponse]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool
