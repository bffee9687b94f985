"""
API v1 router assembly.
"""

from fastapi import APIRouter

from .endpoints import health_router, products_router, qr_router, scan_router, upload_router

# Create main v1 router
v1_router = APIRouter()

# Include endpoint routers
v1_router.include_router(health_router)
v1_router.include_router(scan_router)
v1_router.include_router(products_router)
v1_router.include_router(upload_router)
v1_router.include_router(qr_router)

__all__ = ["v1_router"]
