"""Token purge worker — removes expired refresh-token records.

Learn: Lookups already ignore expired records, so this worker is only
housekeeping: it keeps refresh_tokens from growing forever. It runs as
a background task in the FastAPI lifespan, and `sportshub purge-tokens`
runs a single pass from the CLI.
"""

import asyncio
from typing import Optional

import structlog

from sportshub.config import settings
from sportshub.db.engine import async_session_factory
from sportshub.services.token_service import TokenService

logger = structlog.get_logger()


async def purge_once() -> int:
    """One purge pass in its own session. Returns rows deleted."""
    async with async_session_factory() as db:
        removed = await TokenService(db).purge_expired()
    if removed:
        logger.info("token_purge.removed", count=removed)
    return removed


class TokenPurgeWorker:
    """Background worker that deletes expired refresh tokens.

    Usage:
        worker = TokenPurgeWorker()
        asyncio.create_task(worker.run_loop())
    """

    def __init__(self, interval: Optional[float] = None):
        self.interval = interval or settings.token_purge_interval_seconds
        self._running = False

    async def run_loop(self) -> None:
        self._running = True
        logger.info("token_purge.started", interval=self.interval)

        while self._running:
            try:
                await purge_once()
            except Exception:
                logger.exception("token_purge.error")
            await asyncio.sleep(self.interval)

    def stop(self) -> None:
        """Signal the worker to stop."""
        self._running = False
        logger.info("token_purge.stopping")
