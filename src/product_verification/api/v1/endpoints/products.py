"""
Product API endpoints: administrative management and the public QR image.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from starlette.concurrency import run_in_threadpool

from ....core.exceptions import InvalidInputError, NotFoundError, ProductVerificationError
from ....db.repositories.product_repository import ProductRepository
from ....models.enums import ProductStatus
from ....services.qr_service import QRCodeService
from ....utils.identifiers import is_valid_identifier
from ..dependencies import get_product_repository, get_qr_service, require_admin
from ..schemas.products import (
    ProductCreateRequest,
    ProductListResponse,
    ProductResponse,
    ProductStatusUpdateRequest,
)

logger = structlog.get_logger(module=__name__)

router = APIRouter(prefix="/products", tags=["products"])


def _check_identifier(identifier: str) -> None:
    if not is_valid_identifier(identifier):
        raise InvalidInputError("Invalid product ID format")


@router.post("",
             response_model=ProductResponse,
             status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_admin)],
             summary="Create Product",
             description="Register a product with a fresh scan budget")
async def create_product(
    create_request: ProductCreateRequest,
    product_repository: ProductRepository = Depends(get_product_repository)
):
    """Create a single product."""
    try:
        product = await product_repository.create_product(create_request.identifier, create_request.name)
        return ProductResponse.model_validate(product)

    except (HTTPException, ProductVerificationError):
        raise
    except Exception as e:
        logger.error("Product creation failed", identifier=create_request.identifier, error=str(e))
        raise HTTPException(
            status_code=500,
            detail="Internal server error during product creation"
        )


@router.get("",
            response_model=ProductListResponse,
            dependencies=[Depends(require_admin)],
            summary="List Products",
            description="Search and paginate products, newest first")
async def list_products(
    search: Optional[str] = Query(None, max_length=100, description="Substring of name or identifier"),
    product_status: Optional[ProductStatus] = Query(None, alias="status", description="Filter by status"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Page size"),
    product_repository: ProductRepository = Depends(get_product_repository)
):
    """List products with filters."""
    try:
        result = await product_repository.list_products(
            search=search or None,
            status=product_status,
            page=page,
            page_size=limit
        )

        return ProductListResponse(
            products=[ProductResponse.model_validate(product) for product in result.products],
            total_count=result.total_count,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
            has_next=result.page < result.total_pages,
            has_previous=result.page > 1
        )

    except (HTTPException, ProductVerificationError):
        raise
    except Exception as e:
        logger.error("Product listing failed", search=search, error=str(e))
        raise HTTPException(
            status_code=500,
            detail="Internal server error listing products"
        )


@router.get("/{identifier}/qr",
            response_class=Response,
            responses={200: {"content": {"image/png": {}}}},
            summary="Download Product QR",
            description="PNG QR code for a product (public)")
async def download_qr(
    identifier: str,
    product_repository: ProductRepository = Depends(get_product_repository),
    qr_service: QRCodeService = Depends(get_qr_service)
):
    """Render the printable QR code of an existing product."""
    _check_identifier(identifier)

    product = await product_repository.get_by_identifier(identifier)
    if product is None:
        raise NotFoundError("Product not found")

    png = await run_in_threadpool(qr_service.encode, product.identifier)
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f"attachment; filename=qr_{product.identifier}.png"}
    )


@router.get("/{identifier}",
            response_model=ProductResponse,
            dependencies=[Depends(require_admin)],
            summary="Get Product",
            description="Retrieve a product by identifier")
async def get_product(
    identifier: str,
    product_repository: ProductRepository = Depends(get_product_repository)
):
    """Get product details by identifier."""
    _check_identifier(identifier)

    product = await product_repository.get_by_identifier(identifier)
    if product is None:
        raise NotFoundError("Product not found")

    return ProductResponse.model_validate(product)


@router.patch("/{identifier}/status",
              response_model=ProductResponse,
              dependencies=[Depends(require_admin)],
              summary="Update Product Status",
              description="Force a product active or invalid without touching its scan count")
async def update_product_status(
    identifier: str,
    update_request: ProductStatusUpdateRequest,
    product_repository: ProductRepository = Depends(get_product_repository)
):
    """Update product status."""
    _check_identifier(identifier)

    product = await product_repository.set_status(identifier, update_request.status)
    if product is None:
        raise NotFoundError("Product not found")

    return ProductResponse.model_validate(product)


@router.delete("/{identifier}",
               status_code=status.HTTP_204_NO_CONTENT,
               dependencies=[Depends(require_admin)],
               summary="Delete Product",
               description="Permanently delete a product; its scan history is kept")
async def delete_product(
    identifier: str,
    product_repository: ProductRepository = Depends(get_product_repository)
):
    """Hard delete a product."""
    _check_identifier(identifier)

    if not await product_repository.delete_product(identifier):
        raise NotFoundError("Product not found")

    return Response(status_code=status.HTTP_204_NO_CONTENT)
