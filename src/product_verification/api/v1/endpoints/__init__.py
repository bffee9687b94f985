"""
API v1 endpoints package.
"""

from .health import router as health_router
from .products import router as products_router
from .qr import router as qr_router
from .scan import router as scan_router
from .upload import router as upload_router

__all__ = ["health_router", "products_router", "qr_router", "scan_router", "upload_router"]
