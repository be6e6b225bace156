"""
Storage janitor: reclaims files that per-request cleanup left behind.

Covers results that were never downloaded, originals kept after a failed
removal, and anything a failed delete could not remove.
"""

import asyncio
import time
from contextlib import suppress
from typing import Optional

from app.core.exceptions import CleanupError
from app.core.logger import get_logger
from app.core.storage import StorageArea
from app.services.registry import DownloadRegistry

logger = get_logger(__name__)


class StorageJanitor:
    """Periodically deletes storage files older than `max_age` seconds."""

    def __init__(
        self,
        storage: StorageArea,
        registry: DownloadRegistry,
        interval: float = 300,
        max_age: float = 3600,
    ):
        self.storage = storage
        self.registry = registry
        self.interval = interval
        self.max_age = max_age
        self._task: Optional[asyncio.Task] = None

    async def sweep(self, now: Optional[float] = None) -> int:
        """
        Delete expired files once and prune the registry.

        Returns:
            Number of files deleted
        """
        now = time.time() if now is None else now
        removed = 0

        for path in list(self.storage.iter_files()):
            try:
                expired = self.storage.age_seconds(path, now) > self.max_age
            except FileNotFoundError:
                continue
            if not expired:
                continue
            try:
                self.storage.discard(path)
                removed += 1
            except CleanupError as e:
                logger.error(f"Janitor could not delete file: {e}")

        pruned = await self.registry.prune(self.storage.exists)
        if removed or pruned:
            logger.info(f"Janitor removed {removed} file(s), pruned {pruned} registry entries")
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Janitor sweep failed: {e}", exc_info=True)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="storage-janitor")
            logger.info(f"Janitor started (interval {self.interval}s, max age {self.max_age}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Janitor stopped")
