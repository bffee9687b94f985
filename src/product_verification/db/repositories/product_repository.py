"""
Product repository for database operations.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError

from ...core.exceptions import ConflictError, InvalidInputError, StoreUnavailableError
from ...models.database import Product, utcnow
from ...models.enums import ProductStatus, ScanOutcome
from ...utils.identifiers import IDENTIFIER_LENGTH, is_valid_identifier
from .base import BaseRepository


@dataclass(frozen=True)
class ScanConsumption:
    """Counter state observed or produced by ``try_consume_scan``."""
    outcome: ScanOutcome
    identifier: str
    scan_count: Optional[int] = None
    scan_budget: Optional[int] = None
    status: Optional[ProductStatus] = None


@dataclass(frozen=True)
class ProductPage:
    """One page of products plus the total number of matches."""
    products: List[Product]
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0


class ProductRepository(BaseRepository):
    """Repository for product database operations."""

    component = "product_repository"

    async def create_product(
        self,
        identifier: str,
        name: str,
        scan_budget: Optional[int] = None
    ) -> Product:
        """
        Create a new product with a fresh scan budget.

        Uniqueness is enforced by the identifier's unique index, so two
        concurrent creations of the same identifier yield exactly one
        product and one ConflictError.

        Args:
            identifier: 16-digit product identifier
            name: Display name, trimmed before storing
            scan_budget: Number of permitted successful scans

        Returns:
            Created Product instance

        Raises:
            InvalidInputError: Malformed identifier, blank name or bad budget
            ConflictError: Identifier already exists
        """
        if not is_valid_identifier(identifier):
            raise InvalidInputError(f"product_id must be exactly {IDENTIFIER_LENGTH} digits")

        clean_name = (name or "").strip()
        if not clean_name:
            raise InvalidInputError("product_name is required")

        budget = self.settings.default_scan_budget if scan_budget is None else scan_budget
        if budget < 1:
            raise InvalidInputError("scan budget must be a positive integer")

        product = Product(
            identifier=identifier,
            name=clean_name,
            scan_count=0,
            scan_budget=budget,
            status=ProductStatus.ACTIVE
        )

        async def _insert() -> Product:
            self.session.add(product)
            await self.session.commit()
            return product

        try:
            await self._run(_insert, "create_product")
        except IntegrityError as e:
            self.logger.info("Product creation conflicted", identifier=identifier)
            raise ConflictError("Product with this ID already exists") from e

        self.logger.info(
            "Product created",
            identifier=identifier,
            scan_budget=budget
        )
        return product

    async def get_by_identifier(self, identifier: str) -> Optional[Product]:
        """
        Get product by identifier.

        Args:
            identifier: Product identifier

        Returns:
            Product instance or None if not found
        """
        async def _select() -> Optional[Product]:
            stmt = (
                select(Product)
                .where(Product.identifier == identifier)
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

        product = await self._run(_select, "get_by_identifier", idempotent=True)
        self.logger.debug("Product lookup", identifier=identifier, found=product is not None)
        return product

    async def exists(self, identifier: str) -> bool:
        """Check whether a product with the identifier exists."""
        async def _select() -> bool:
            stmt = select(Product.id).where(Product.identifier == identifier).limit(1)
            result = await self.session.execute(stmt)
            return result.first() is not None

        return await self._run(_select, "exists", idempotent=True)

    async def get_by_identifiers(self, identifiers: Sequence[str]) -> List[Product]:
        """Get the products matching any of the identifiers, oldest first."""
        if not identifiers:
            return []

        async def _select() -> List[Product]:
            stmt = (
                select(Product)
                .where(Product.identifier.in_(list(identifiers)))
                .order_by(Product.created_at.asc(), Product.id.asc())
            )
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

        return await self._run(_select, "get_by_identifiers", idempotent=True)

    async def list_all_identifiers(self) -> List[str]:
        """Return every stored identifier, oldest product first."""
        async def _select() -> List[str]:
            stmt = select(Product.identifier).order_by(Product.created_at.asc(), Product.id.asc())
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

        return await self._run(_select, "list_all_identifiers", idempotent=True)

    async def list_products(
        self,
        search: Optional[str] = None,
        status: Optional[ProductStatus] = None,
        page: int = 1,
        page_size: int = 10
    ) -> ProductPage:
        """
        List products newest first with optional filters.

        Args:
            search: Case-insensitive substring matched against name or identifier
            status: Restrict to one lifecycle status
            page: 1-based page number
            page_size: Products per page

        Returns:
            ProductPage with the requested slice and the total match count
        """
        page = max(page, 1)
        page_size = max(page_size, 1)

        conditions = []
        if search:
            conditions.append(
                or_(
                    Product.name.icontains(search, autoescape=True),
                    Product.identifier.icontains(search, autoescape=True)
                )
            )
        if status is not None:
            conditions.append(Product.status == status)

        async def _select() -> Tuple[List[Product], int]:
            count_stmt = select(func.count(Product.id)).where(*conditions)
            total_count = (await self.session.execute(count_stmt)).scalar_one()

            stmt = (
                select(Product)
                .where(*conditions)
                .order_by(Product.created_at.desc(), Product.id.desc())
                .limit(page_size)
                .offset((page - 1) * page_size)
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(stmt)
            return list(result.scalars().all()), total_count

        products, total_count = await self._run(_select, "list_products", idempotent=True)

        self.logger.info(
            "Products listed",
            search=search,
            status=status.value if status else None,
            page=page,
            total_count=total_count,
            returned_count=len(products)
        )
        return ProductPage(products=products, total_count=total_count, page=page, page_size=page_size)

    async def set_status(self, identifier: str, status: ProductStatus) -> Optional[Product]:
        """
        Administrative status override. The scan counter is left untouched,
        so reactivating an exhausted product does not restore its budget.

        Returns:
            Updated Product or None if not found
        """
        async def _update() -> int:
            stmt = (
                update(Product)
                .where(Product.identifier == identifier)
                .values(status=status, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount

        updated = await self._run(_update, "set_status")
        if not updated:
            return None

        self.logger.info("Product status updated", identifier=identifier, new_status=status.value)
        return await self.get_by_identifier(identifier)

    async def delete_product(self, identifier: str) -> bool:
        """Hard delete a product. Scan ledger rows are kept."""
        async def _delete() -> int:
            stmt = delete(Product).where(Product.identifier == identifier)
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount

        deleted = await self._run(_delete, "delete_product")
        if deleted:
            self.logger.info("Product deleted", identifier=identifier)
        return bool(deleted)

    async def mark_invalid(self, identifier: str) -> bool:
        """
        Flip an active product to invalid.

        Returns:
            True if this call changed the status
        """
        async def _update() -> int:
            stmt = (
                update(Product)
                .where(Product.identifier == identifier, Product.status == ProductStatus.ACTIVE)
                .values(status=ProductStatus.INVALID, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount

        return bool(await self._run(_update, "mark_invalid"))

    async def try_consume_scan(self, identifier: str) -> ScanConsumption:
        """
        Atomically consume one unit of scan budget.

        The increment is a conditional update keyed on the counter value
        that was just read. If another writer got there first the update
        matches no row and the product is read again. Every lost race
        means some other request consumed a unit or invalidated the
        product, so the loop ends once the budget is gone.

        Returns:
            ScanConsumption describing the post-update counter (CONSUMED),
            the current counter (EXHAUSTED) or NOT_FOUND

        Raises:
            StoreUnavailableError: Store failure, or contention outlasting
                ``scan_cas_max_attempts``
        """
        for attempt_num in range(1, self.settings.scan_cas_max_attempts + 1):
            snapshot = await self._read_counter(identifier)
            if snapshot is None:
                return ScanConsumption(outcome=ScanOutcome.NOT_FOUND, identifier=identifier)

            scan_count, scan_budget, status = snapshot
            if status == ProductStatus.INVALID or scan_count >= scan_budget:
                return ScanConsumption(
                    outcome=ScanOutcome.EXHAUSTED,
                    identifier=identifier,
                    scan_count=scan_count,
                    scan_budget=scan_budget,
                    status=status
                )

            new_count = scan_count + 1
            new_status = ProductStatus.INVALID if new_count >= scan_budget else ProductStatus.ACTIVE

            if await self._compare_and_increment(identifier, scan_count, scan_budget, new_count, new_status):
                self.logger.info(
                    "Scan consumed",
                    identifier=identifier,
                    scan_count=new_count,
                    scan_budget=scan_budget,
                    status=new_status.value
                )
                return ScanConsumption(
                    outcome=ScanOutcome.CONSUMED,
                    identifier=identifier,
                    scan_count=new_count,
                    scan_budget=scan_budget,
                    status=new_status
                )

            self.logger.debug(
                "Scan counter changed concurrently, re-reading",
                identifier=identifier,
                observed_count=scan_count,
                attempt=attempt_num
            )

        self.logger.warning(
            "Scan consumption gave up under contention",
            identifier=identifier,
            attempts=self.settings.scan_cas_max_attempts
        )
        raise StoreUnavailableError("Too much concurrent activity on this product, try again")

    async def _read_counter(self, identifier: str) -> Optional[Tuple[int, int, ProductStatus]]:
        async def _select():
            stmt = select(Product.scan_count, Product.scan_budget, Product.status).where(
                Product.identifier == identifier
            )
            row = (await self.session.execute(stmt)).first()
            # End the read so the next snapshot sees other writers' commits
            await self.session.commit()
            return tuple(row) if row is not None else None

        return await self._run(_select, "read_counter", idempotent=True)

    async def _compare_and_increment(
        self,
        identifier: str,
        observed_count: int,
        scan_budget: int,
        new_count: int,
        new_status: ProductStatus
    ) -> bool:
        async def _update() -> int:
            stmt = (
                update(Product)
                .where(
                    Product.identifier == identifier,
                    Product.status == ProductStatus.ACTIVE,
                    Product.scan_count == observed_count,
                    Product.scan_budget == scan_budget,
                    Product.scan_count < Product.scan_budget
                )
                .values(scan_count=new_count, status=new_status, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount

        return await self._run(_update, "consume_scan") == 1
