"""
Verification engine: consumes scan budget and decides the public response.
"""

from typing import Any, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ..api.v1.schemas.scan import VerificationResponse
from ..core.exceptions import StoreUnavailableError
from ..db.repositories.product_repository import ProductRepository, ScanConsumption
from ..db.repositories.scan_repository import ScanRepository
from ..models.enums import InvalidReason, ProductStatus, ScanOutcome, VerificationStatus
from ..utils.identifiers import is_valid_identifier

logger = structlog.get_logger(module=__name__)

VERIFIED_MESSAGE = "Product verified successfully"
LAST_VALID_MESSAGE = "Last valid scan"
EXHAUSTED_MESSAGE = "Invalid QR / scan limit exceeded"
NOT_FOUND_MESSAGE = "Invalid QR / scan limit exceeded"
MALFORMED_MESSAGE = "Invalid product ID"


class VerificationService:
    """Service class for public product verification."""

    def __init__(self, product_repository: ProductRepository, scan_repository: ScanRepository):
        self.product_repository = product_repository
        self.scan_repository = scan_repository

    async def verify(self, identifier: Any, source_address: Optional[str] = None) -> VerificationResponse:
        """
        Verify a product by identifier, consuming one scan when allowed.

        Malformed and unknown identifiers are ordinary ``invalid``
        responses, never exceptions. Known products get a ledger entry
        whether or not the scan succeeds.

        Args:
            identifier: Raw identifier from the request
            source_address: Caller address for the scan ledger

        Returns:
            VerificationResponse for the request

        Raises:
            StoreUnavailableError: The product store could not be reached
        """
        if not is_valid_identifier(identifier):
            logger.info("Verification rejected malformed identifier")
            return VerificationResponse(
                status=VerificationStatus.INVALID,
                reason=InvalidReason.MALFORMED_IDENTIFIER,
                message=MALFORMED_MESSAGE
            )

        consumption = await self.product_repository.try_consume_scan(identifier)

        if consumption.outcome is ScanOutcome.NOT_FOUND:
            logger.info("Verification of unknown identifier", identifier=identifier)
            return VerificationResponse(
                status=VerificationStatus.INVALID,
                reason=InvalidReason.NOT_FOUND,
                message=NOT_FOUND_MESSAGE
            )

        if consumption.outcome is ScanOutcome.EXHAUSTED:
            if consumption.status != ProductStatus.INVALID:
                await self._heal_status(identifier)
            await self._record_attempt(identifier, source_address)

            logger.info(
                "Verification rejected exhausted product",
                identifier=identifier,
                scan_count=consumption.scan_count,
                scan_budget=consumption.scan_budget
            )
            return self._build_response(
                consumption,
                VerificationStatus.INVALID,
                EXHAUSTED_MESSAGE,
                reason=InvalidReason.EXHAUSTED
            )

        await self._record_attempt(identifier, source_address)

        if consumption.scan_count < consumption.scan_budget:
            return self._build_response(consumption, VerificationStatus.VERIFIED, VERIFIED_MESSAGE)

        logger.info(
            "Final valid scan consumed",
            identifier=identifier,
            scan_budget=consumption.scan_budget
        )
        return self._build_response(consumption, VerificationStatus.LAST_VALID, LAST_VALID_MESSAGE)

    async def _heal_status(self, identifier: str) -> None:
        # Counter already at budget while status says active
        try:
            if await self.product_repository.mark_invalid(identifier):
                logger.warning("Exhausted product was still active, marked invalid", identifier=identifier)
        except (StoreUnavailableError, SQLAlchemyError) as e:
            logger.warning("Could not mark exhausted product invalid", identifier=identifier, error=str(e))

    async def _record_attempt(self, identifier: str, source_address: Optional[str]) -> None:
        try:
            await self.scan_repository.append(identifier, source_address or "unknown")
        except (StoreUnavailableError, SQLAlchemyError) as e:
            logger.warning(
                "Scan ledger append failed",
                identifier=identifier,
                error=str(e),
                error_type=type(e).__name__
            )

    @staticmethod
    def _build_response(
        consumption: ScanConsumption,
        status: VerificationStatus,
        message: str,
        reason: Optional[InvalidReason] = None
    ) -> VerificationResponse:
        return VerificationResponse(
            status=status,
            message=message,
            reason=reason,
            identifier=consumption.identifier,
            scan_count=consumption.scan_count,
            scan_budget=consumption.scan_budget
        )
