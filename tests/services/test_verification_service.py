"""
Tests for the verification service.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import update

from product_verification.core.exceptions import StoreUnavailableError
from product_verification.db.repositories.product_repository import ProductRepository
from product_verification.db.repositories.scan_repository import ScanRepository
from product_verification.models.database import Product
from product_verification.models.enums import InvalidReason, ProductStatus, VerificationStatus
from product_verification.services.verification_service import VerificationService

PRODUCT_ID = "1234567812345678"


@pytest.fixture
def verification_service(product_repository, scan_repository):
    return VerificationService(product_repository, scan_repository)


class TestVerify:
    """Test the verification lifecycle."""

    @pytest.mark.asyncio
    async def test_default_budget_lifecycle(self, verification_service, product_repository, scan_repository):
        await product_repository.create_product(PRODUCT_ID, "Tea")

        first = await verification_service.verify(PRODUCT_ID, "10.0.0.1")
        second = await verification_service.verify(PRODUCT_ID, "10.0.0.1")
        third = await verification_service.verify(PRODUCT_ID, "10.0.0.1")

        assert first.status == VerificationStatus.VERIFIED
        assert first.message == "Product verified successfully"
        assert (first.scan_count, first.scan_budget) == (1, 2)

        assert second.status == VerificationStatus.LAST_VALID
        assert second.message == "Last valid scan"
        assert second.scan_count == 2

        assert third.status == VerificationStatus.INVALID
        assert third.reason == InvalidReason.EXHAUSTED
        assert third.message == "Invalid QR / scan limit exceeded"
        assert third.scan_count == 2

        product = await product_repository.get_by_identifier(PRODUCT_ID)
        assert product.scan_count == 2
        assert product.status == ProductStatus.INVALID
        assert await scan_repository.count_for_identifier(PRODUCT_ID) == 3

    @pytest.mark.asyncio
    async def test_single_scan_budget_goes_straight_to_last_valid(self, verification_service, product_repository):
        await product_repository.create_product(PRODUCT_ID, "Tea", scan_budget=1)

        result = await verification_service.verify(PRODUCT_ID)

        assert result.status == VerificationStatus.LAST_VALID

    @pytest.mark.asyncio
    async def test_rejections_are_idempotent(self, verification_service, product_repository):
        await product_repository.create_product(PRODUCT_ID, "Tea", scan_budget=1)
        await verification_service.verify(PRODUCT_ID)

        rejections = [await verification_service.verify(PRODUCT_ID) for _ in range(3)]

        assert all(result.status == VerificationStatus.INVALID for result in rejections)
        product = await product_repository.get_by_identifier(PRODUCT_ID)
        assert product.scan_count == 1

    @pytest.mark.asyncio
    async def test_unknown_identifier_leaves_no_ledger_entry(self, verification_service, scan_repository):
        result = await verification_service.verify(PRODUCT_ID, "10.0.0.1")

        assert result.status == VerificationStatus.INVALID
        assert result.reason == InvalidReason.NOT_FOUND
        assert result.identifier is None
        assert await scan_repository.count_for_identifier(PRODUCT_ID) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identifier", [None, "", "123", "12345678123456789", "12345678abcdefgh", 1234567812345678])
    async def test_malformed_identifier(self, verification_service, identifier):
        with patch.object(verification_service.product_repository, "try_consume_scan", new_callable=AsyncMock) as mock:
            result = await verification_service.verify(identifier)

        assert result.status == VerificationStatus.INVALID
        assert result.reason == InvalidReason.MALFORMED_IDENTIFIER
        assert result.message == "Invalid product ID"
        mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exhausted_but_active_product_is_healed(self, verification_service, product_repository, session):
        await product_repository.create_product(PRODUCT_ID, "Tea")
        await session.execute(
            update(Product).where(Product.identifier == PRODUCT_ID).values(scan_count=2, status=ProductStatus.ACTIVE)
        )
        await session.commit()

        result = await verification_service.verify(PRODUCT_ID)

        assert result.status == VerificationStatus.INVALID
        product = await product_repository.get_by_identifier(PRODUCT_ID)
        assert product.status == ProductStatus.INVALID
        assert product.scan_count == 2

    @pytest.mark.asyncio
    async def test_admin_invalidated_product_is_rejected(self, verification_service, product_repository):
        await product_repository.create_product(PRODUCT_ID, "Tea")
        await product_repository.set_status(PRODUCT_ID, ProductStatus.INVALID)

        result = await verification_service.verify(PRODUCT_ID)

        assert result.status == VerificationStatus.INVALID
        assert result.reason == InvalidReason.EXHAUSTED
        assert result.scan_count == 0

    @pytest.mark.asyncio
    async def test_ledger_failure_does_not_fail_verification(self, verification_service, product_repository):
        await product_repository.create_product(PRODUCT_ID, "Tea")

        with patch.object(verification_service.scan_repository, "append", new_callable=AsyncMock) as mock_append:
            mock_append.side_effect = StoreUnavailableError("Store unavailable during append_scan_attempt")
            result = await verification_service.verify(PRODUCT_ID, "10.0.0.1")

        assert result.status == VerificationStatus.VERIFIED
        mock_append.assert_awaited_once_with(PRODUCT_ID, "10.0.0.1")

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, verification_service):
        with patch.object(verification_service.product_repository, "try_consume_scan", new_callable=AsyncMock) as mock:
            mock.side_effect = StoreUnavailableError("Store unavailable during read_counter")

            with pytest.raises(StoreUnavailableError):
                await verification_service.verify(PRODUCT_ID)


class TestConcurrentVerification:
    """Concurrent scans never consume more than the budget."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("budget, scanners", [(2, 8), (3, 10)])
    async def test_successes_never_exceed_budget(self, database, settings, product_repository, budget, scanners):
        await product_repository.create_product(PRODUCT_ID, "Tea", scan_budget=budget)

        async def scan(index):
            async with database.session_maker() as session:
                service = VerificationService(
                    ProductRepository(session, settings),
                    ScanRepository(session, settings)
                )
                return await service.verify(PRODUCT_ID, f"10.0.0.{index}")

        results = await asyncio.gather(*(scan(index) for index in range(scanners)))
        statuses = [result.status for result in results]

        assert statuses.count(VerificationStatus.VERIFIED) == budget - 1
        assert statuses.count(VerificationStatus.LAST_VALID) == 1
        assert statuses.count(VerificationStatus.INVALID) == scanners - budget

        product = await product_repository.get_by_identifier(PRODUCT_ID)
        assert product.scan_count == budget
        assert product.status == ProductStatus.INVALID
