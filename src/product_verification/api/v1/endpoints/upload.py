"""
Bulk import endpoint.
"""

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from ....core.exceptions import FileTooLargeError, ProductVerificationError
from ....services.import_service import BulkImportService
from ..dependencies import get_import_service, require_admin
from ..schemas.imports import ImportSummaryResponse

logger = structlog.get_logger(module=__name__)

router = APIRouter(prefix="/upload", tags=["upload"])


@router.post("/excel",
             response_model=ImportSummaryResponse,
             dependencies=[Depends(require_admin)],
             summary="Bulk Import Products",
             description="Create products from a spreadsheet with product_id and product_name columns")
async def bulk_upload_products(
    file: UploadFile = File(..., description="Spreadsheet (.xlsx, .xls or .csv)"),
    import_service: BulkImportService = Depends(get_import_service)
):
    """
    Import products from a spreadsheet.

    Every row is processed independently; the response counts inserted,
    invalid and duplicate rows and lists the first diagnostics.
    """
    try:
        import_service.check_upload(file.filename, 0)

        # Read one byte past the cap to detect oversize uploads without buffering them
        limit = import_service.settings.max_upload_size_bytes
        content = await file.read(limit + 1)
        if len(content) > limit:
            raise FileTooLargeError(f"File exceeds the {import_service.settings.max_upload_size_mb}MB upload limit")

        summary = await import_service.import_file(file.filename, content)

        logger.info(
            "Bulk upload processed",
            filename=file.filename,
            inserted=summary.inserted,
            skipped_invalid=summary.skipped_invalid,
            skipped_duplicate=summary.skipped_duplicate
        )
        return summary

    except (HTTPException, ProductVerificationError):
        raise
    except Exception as e:
        logger.error("Bulk upload failed", filename=file.filename, error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=500,
            detail="Internal server error during bulk upload"
        )
    finally:
        await file.close()
