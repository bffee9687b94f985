"""
Shared timeout and retry handling for repositories.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...config.settings import Settings, get_settings
from ...core.exceptions import StoreUnavailableError

T = TypeVar("T")

TRANSIENT_ERRORS = (asyncio.TimeoutError, OperationalError, InterfaceError)


class BaseRepository:
    """Base class binding a session, settings and a component logger."""

    component = "repository"

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()
        self.logger = structlog.get_logger(
            component=self.component,
            session_id=id(session)
        )

    async def _run(
        self,
        operation: Callable[[], Awaitable[T]],
        action: str,
        idempotent: bool = False
    ) -> T:
        """
        Run a store operation under the configured timeout.

        Idempotent reads are retried with a growing delay on transient
        failures; writes get a single attempt. Transient failures that
        survive the retries surface as StoreUnavailableError.

        Args:
            operation: Zero-argument coroutine factory performing the work
            action: Name used in log events and error messages
            idempotent: Whether the operation is safe to repeat

        Returns:
            Whatever the operation returns
        """
        max_attempts = self.settings.store_read_retries + 1 if idempotent else 1
        backoff = self.settings.store_retry_backoff_seconds

        for attempt_num in range(1, max_attempts + 1):
            try:
                return await asyncio.wait_for(operation(), timeout=self.settings.store_timeout_seconds)
            except TRANSIENT_ERRORS as e:
                await self._safe_rollback()

                if attempt_num < max_attempts:
                    delay = backoff * attempt_num
                    self.logger.info(
                        "Store operation failed, retrying",
                        action=action,
                        attempt=attempt_num,
                        retry_in=delay,
                        error=str(e) or type(e).__name__
                    )
                    await asyncio.sleep(delay)
                    continue

                self.logger.error(
                    "Store operation unavailable",
                    action=action,
                    attempts=attempt_num,
                    error=str(e) or type(e).__name__,
                    error_type=type(e).__name__
                )
                raise StoreUnavailableError(f"Store unavailable during {action}") from e
            except SQLAlchemyError:
                await self._safe_rollback()
                raise

        # max_attempts is always >= 1
        raise AssertionError("unreachable")

    async def _safe_rollback(self) -> None:
        try:
            await self.session.rollback()
        except Exception as e:
            self.logger.warning("Rollback after store failure did not complete", error=str(e))
