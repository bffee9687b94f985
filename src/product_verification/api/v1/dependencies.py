"""
FastAPI dependencies shared by the v1 endpoints.
"""

import secrets
from typing import AsyncGenerator, Optional

import structlog
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...config.database import Database
from ...config.settings import Settings
from ...db.repositories.product_repository import ProductRepository
from ...db.repositories.scan_repository import ScanRepository
from ...services.import_service import BulkImportService
from ...services.qr_service import QRArchiveService, QRCodeService
from ...services.verification_service import VerificationService

logger = structlog.get_logger(module=__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_database(request: Request) -> Database:
    """Database owned by the running application."""
    return request.app.state.database


async def get_db_session(database: Database = Depends(get_database)) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with database.session() as session:
        yield session


def get_product_repository(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings)
) -> ProductRepository:
    return ProductRepository(session, settings)


def get_verification_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings)
) -> VerificationService:
    """Dependency to get the verification service."""
    return VerificationService(ProductRepository(session, settings), ScanRepository(session, settings))


def get_import_service(
    product_repository: ProductRepository = Depends(get_product_repository),
    settings: Settings = Depends(get_app_settings)
) -> BulkImportService:
    """Dependency to get the bulk import service."""
    return BulkImportService(product_repository, settings)


def get_qr_service(request: Request) -> QRCodeService:
    """QR codec built once per application."""
    return request.app.state.qr_service


def get_qr_archive_service(
    product_repository: ProductRepository = Depends(get_product_repository),
    qr_service: QRCodeService = Depends(get_qr_service)
) -> QRArchiveService:
    return QRArchiveService(product_repository, qr_service)


async def require_admin(
    settings: Settings = Depends(get_app_settings),
    authorization: Optional[str] = Header(None)
) -> None:
    """
    Gate for administrative endpoints.

    Authentication itself lives outside this service; when an admin token
    is configured the caller must present it as a bearer token.
    """
    expected = settings.admin_api_token
    if not expected:
        return

    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token.strip().encode(), expected.encode()):
        logger.warning("Rejected admin request", has_authorization=authorization is not None)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )
