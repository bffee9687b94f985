"""
Bulk QR download endpoint.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Body, Depends, Response

from ....services.qr_service import QRArchiveService
from ..dependencies import get_qr_archive_service, require_admin
from ..schemas.imports import BulkQRRequest

logger = structlog.get_logger(module=__name__)

router = APIRouter(prefix="/qr", tags=["qr"])


@router.post("/bulk-download",
             response_class=Response,
             dependencies=[Depends(require_admin)],
             responses={200: {"content": {"application/zip": {}}}},
             summary="Bulk Download QR Codes",
             description="Zip of QR images for the selected products, or for all products")
async def bulk_download_qr(
    selection: Optional[BulkQRRequest] = Body(None),
    archive_service: QRArchiveService = Depends(get_qr_archive_service)
):
    """Download QR codes for several products at once."""
    identifiers = selection.product_ids if selection else None
    archive = await archive_service.build_archive(identifiers)

    timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f"attachment; filename=qr_codes_{timestamp}.zip"}
    )
