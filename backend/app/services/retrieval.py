"""
Retrieval gate: serves each processed result exactly once.

Responsibilities:
- Confine download ids to processed results inside the storage area
- Claim the result in the registry so concurrent requests cannot both get it
- Stream the file as an attachment and delete it once the send is over
"""

import mimetypes
from pathlib import Path

from fastapi.responses import FileResponse

from app.core.exceptions import CleanupError, NotFoundError
from app.core.logger import get_logger
from app.core.storage import RESULT_PREFIX, StorageArea
from app.services.registry import DownloadRegistry

logger = get_logger(__name__)


class ConsumingFileResponse(FileResponse):
    """
    FileResponse that deletes its file after sending.

    Deletion runs whether the transfer finished or failed part-way: an
    attempted send counts as the one download.
    """

    def __init__(self, path: Path, storage: StorageArea, **kwargs):
        super().__init__(path, **kwargs)
        self.storage = storage

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except Exception as e:
            logger.error(f"Error sending {Path(self.path).name}: {e}")
            raise
        finally:
            try:
                self.storage.discard(self.path)
            except CleanupError as e:
                logger.error(f"Could not delete downloaded file: {e}")


class RetrievalGate:
    """Resolves download ids and hands out consuming responses."""

    def __init__(self, storage: StorageArea, registry: DownloadRegistry):
        self.storage = storage
        self.registry = registry

    async def retrieve(self, download_id: str) -> ConsumingFileResponse:
        """
        Claim a processed result for download.

        Args:
            download_id: Result file name previously returned by /remove-bg

        Returns:
            A response streaming the file as an attachment named `download_id`

        Raises:
            NotFoundError: If the id is not a result in the storage area or
                has already been downloaded
        """
        if not download_id.startswith(RESULT_PREFIX):
            raise NotFoundError()
        path = self.storage.resolve(download_id)

        if not await self.registry.claim(download_id, self.storage.exists):
            logger.info(f"Download of {download_id} refused: missing or already claimed")
            raise NotFoundError()

        logger.info(f"Serving {download_id}")
        media_type = mimetypes.guess_type(download_id)[0] or "application/octet-stream"
        return ConsumingFileResponse(
            path,
            storage=self.storage,
            media_type=media_type,
            headers={"Content-Disposition": f"attachment; filename={download_id}"},
        )
