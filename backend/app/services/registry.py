"""
In-memory registry of processed results awaiting download.

The storage area stays the source of truth for whether a result exists;
the registry only records whether a result has already been claimed, so
that two simultaneous downloads of the same id cannot both stream it.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from app.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class DownloadEntry:
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    consumed: bool = False


class DownloadRegistry:
    """Tracks `download_id -> DownloadEntry` behind an asyncio lock."""

    def __init__(self):
        self._entries: Dict[str, DownloadEntry] = {}
        self._lock = asyncio.Lock()

    async def register(self, download_id: str) -> None:
        async with self._lock:
            # A claim may already have adopted the file; never reset it
            self._entries.setdefault(download_id, DownloadEntry())

    async def claim(self, download_id: str, exists: Callable[[str], bool]) -> bool:
        """
        Atomically mark a result as consumed.

        Args:
            download_id: Result file name
            exists: Storage existence check for the id

        Returns:
            True if the caller now owns the download, False if the result
            is missing or was already claimed
        """
        async with self._lock:
            entry = self._entries.get(download_id)
            if entry is not None and entry.consumed:
                return False
            if not exists(download_id):
                return False
            if entry is None:
                # Result written before this process started
                logger.info(f"Adopting unregistered result {download_id}")
                entry = DownloadEntry()
                self._entries[download_id] = entry
            entry.consumed = True
            return True

    async def prune(self, exists: Callable[[str], bool]) -> int:
        """Forget entries whose files are gone. Returns how many were dropped."""
        async with self._lock:
            stale = [d for d in self._entries if not exists(d)]
            for download_id in stale:
                del self._entries[download_id]
        return len(stale)

    def get(self, download_id: str) -> Optional[DownloadEntry]:
        return self._entries.get(download_id)

    def __len__(self) -> int:
        return len(self._entries)
