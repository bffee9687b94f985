"""
Bulk import reconciler: spreadsheet rows -> products, with per-row accounting.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from ..api.v1.schemas.imports import ImportSummaryResponse
from ..config.settings import Settings, get_settings
from ..core.exceptions import (
    ConflictError,
    FileTooLargeError,
    InvalidInputError,
    StoreUnavailableError,
    UnsupportedFileError,
)
from ..db.repositories.product_repository import ProductRepository
from ..utils.identifiers import IDENTIFIER_LENGTH, is_valid_identifier
from ..utils.spreadsheet import ProductRow, parse_product_rows

logger = structlog.get_logger(module=__name__)


@dataclass
class ImportSummary:
    """Running counts for one import; accurate for the rows processed so far."""
    total_rows: int = 0
    processed_rows: int = 0
    inserted: int = 0
    skipped_invalid: int = 0
    skipped_duplicate: int = 0
    errors: List[str] = field(default_factory=list)
    error_count: int = 0
    error_limit: int = 10

    def add_error(self, message: str) -> None:
        self.error_count += 1
        if len(self.errors) < self.error_limit:
            self.errors.append(message)

    def counts(self) -> Dict[str, int]:
        return {
            "total_rows": self.total_rows,
            "processed_rows": self.processed_rows,
            "inserted": self.inserted,
            "skipped_invalid": self.skipped_invalid,
            "skipped_duplicate": self.skipped_duplicate,
        }

    def to_response(self) -> ImportSummaryResponse:
        return ImportSummaryResponse(
            total_rows=self.total_rows,
            inserted=self.inserted,
            skipped_invalid=self.skipped_invalid,
            skipped_duplicate=self.skipped_duplicate,
            errors=list(self.errors)
        )


class BulkImportService:
    """Service class for spreadsheet product imports."""

    def __init__(self, product_repository: ProductRepository, settings: Optional[Settings] = None):
        self.product_repository = product_repository
        self.settings = settings or get_settings()

    def check_upload(self, filename: Optional[str], size: int) -> None:
        """
        Validate upload metadata before parsing.

        Raises:
            UnsupportedFileError: Missing name or extension not allowed
            FileTooLargeError: Upload exceeds the size cap
        """
        name = (filename or "").lower()
        if not name or not any(name.endswith(ext) for ext in self.settings.allowed_upload_extensions):
            allowed = ", ".join(self.settings.allowed_upload_extensions)
            raise UnsupportedFileError(f"Invalid file type. Please upload a spreadsheet ({allowed})")

        if size > self.settings.max_upload_size_bytes:
            raise FileTooLargeError(
                f"File exceeds the {self.settings.max_upload_size_mb}MB upload limit"
            )

    async def import_file(
        self,
        filename: str,
        content: bytes,
        summary: Optional[ImportSummary] = None
    ) -> ImportSummaryResponse:
        """
        Parse a spreadsheet and reconcile its rows against the product store.

        Args:
            filename: Original file name, used to pick the parser
            content: Raw file bytes
            summary: Optional caller-owned summary updated as rows complete

        Returns:
            ImportSummaryResponse for the whole file

        Raises:
            EmptyFileError, SchemaError, UnreadableFileError: File unusable
            StoreUnavailableError: Store failed mid-import; counts so far are logged
        """
        self.check_upload(filename, len(content))

        rows = await asyncio.to_thread(parse_product_rows, filename, content)

        if summary is None:
            summary = ImportSummary(error_limit=self.settings.import_error_limit)
        summary.total_rows = len(rows)

        logger.info("Bulk import started", filename=filename, total_rows=summary.total_rows)

        await self.import_rows(rows, summary)

        logger.info(
            "Bulk import completed",
            filename=filename,
            error_count=summary.error_count,
            **summary.counts()
        )
        return summary.to_response()

    async def import_rows(self, rows: List[ProductRow], summary: ImportSummary) -> ImportSummary:
        """
        Reconcile rows one at a time. Each created product is committed on
        its own, so an interruption never leaves a row half applied.
        """
        try:
            for row in rows:
                await self._reconcile_row(row, summary)
                summary.processed_rows += 1
        except (asyncio.CancelledError, StoreUnavailableError):
            logger.warning("Bulk import interrupted", **summary.counts())
            raise

        return summary

    async def _reconcile_row(self, row: ProductRow, summary: ImportSummary) -> None:
        if not row.identifier:
            summary.skipped_invalid += 1
            summary.add_error(f"Row {row.row_number}: Missing product_id")
            return

        if not row.name:
            summary.skipped_invalid += 1
            summary.add_error(f"Row {row.row_number}: Missing product_name")
            return

        if not is_valid_identifier(row.identifier):
            summary.skipped_invalid += 1
            summary.add_error(
                f"Row {row.row_number}: Invalid product_id format "
                f"(must be exactly {IDENTIFIER_LENGTH} digits, got: {len(row.identifier)} digits)"
            )
            return

        if await self.product_repository.exists(row.identifier):
            summary.skipped_duplicate += 1
            return

        try:
            await self.product_repository.create_product(row.identifier, row.name)
        except ConflictError:
            # Created concurrently between the existence check and the insert
            summary.skipped_duplicate += 1
            return
        except InvalidInputError as e:
            summary.skipped_invalid += 1
            summary.add_error(f"Row {row.row_number}: {e.message}")
            return

        summary.inserted += 1
