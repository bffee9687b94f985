"""
Scan ledger repository: append-only record of verification attempts.
"""

from sqlalchemy import func, select

from ...models.database import ScanAttempt
from .base import BaseRepository


class ScanRepository(BaseRepository):
    """Repository for scan attempt records."""

    component = "scan_repository"

    async def append(self, identifier: str, source_address: str) -> ScanAttempt:
        """
        Record one verification attempt.

        Args:
            identifier: Product identifier the attempt was made against
            source_address: Best-effort caller network address

        Returns:
            The stored ScanAttempt
        """
        attempt = ScanAttempt(identifier=identifier, source_address=source_address or "unknown")

        async def _insert() -> ScanAttempt:
            self.session.add(attempt)
            await self.session.commit()
            return attempt

        await self._run(_insert, "append_scan_attempt")
        self.logger.debug("Scan attempt recorded", identifier=identifier, source_address=attempt.source_address)
        return attempt

    async def count_for_identifier(self, identifier: str) -> int:
        """Number of recorded attempts for an identifier."""
        async def _count() -> int:
            stmt = select(func.count(ScanAttempt.id)).where(ScanAttempt.identifier == identifier)
            return (await self.session.execute(stmt)).scalar_one()

        return await self._run(_count, "count_scan_attempts", idempotent=True)
