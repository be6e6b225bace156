"""
Processing coordinator: drives one upload through background removal.

Per-request state transitions:
    received -> submitted -> result available -> original reclaimed -> completed

The original upload is only deleted after the result has been written,
so a failed write never loses the input before the request has failed.
"""

import asyncio
from typing import Optional

from app.core.exceptions import CleanupError, EngineTimeoutError, ProcessingError
from app.core.logger import get_logger
from app.core.storage import StorageArea, result_name
from app.models.file_models import ProcessedFile, UploadedFile
from app.services.registry import DownloadRegistry
from app.services.removal_engine import BackgroundRemovalEngine

logger = get_logger(__name__)


class ProcessingCoordinator:
    """Turns an UploadedFile into a ProcessedFile using the removal engine."""

    def __init__(
        self,
        storage: StorageArea,
        engine: BackgroundRemovalEngine,
        registry: DownloadRegistry,
        timeout: Optional[float] = None,
        retain_failed_uploads: bool = False,
    ):
        self.storage = storage
        self.engine = engine
        self.registry = registry
        self.timeout = timeout
        self.retain_failed_uploads = retain_failed_uploads

    async def process(self, uploaded: UploadedFile) -> ProcessedFile:
        """
        Remove the background of an accepted upload.

        Args:
            uploaded: Validated upload already stored on disk

        Returns:
            The stored result, registered for a single download

        Raises:
            EngineTimeoutError: If the engine exceeds the configured timeout
            ProcessingError: If the engine fails or the result cannot be saved
        """
        name = uploaded.path.name
        logger.info(f"Submitting {name} to the removal engine")

        try:
            data = await asyncio.wait_for(self.engine.remove(uploaded.path), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Removal engine timed out after {self.timeout}s for {name}")
            self._handle_failed_upload(uploaded)
            raise EngineTimeoutError()
        except Exception as e:
            logger.error(f"Background removal failed for {name}: {e}", exc_info=True)
            self._handle_failed_upload(uploaded)
            raise ProcessingError("Error removing the background") from e

        if not data:
            logger.error(f"Removal engine returned no data for {name}")
            self._handle_failed_upload(uploaded)
            raise ProcessingError("Error removing the background")

        loop = asyncio.get_running_loop()
        try:
            output_path = await loop.run_in_executor(
                None, self.storage.write_bytes, result_name, data
            )
        except OSError as e:
            logger.error(f"Failed to save processed image for {name}: {e}")
            self._handle_failed_upload(uploaded)
            raise ProcessingError("Error saving the processed image") from e

        processed = ProcessedFile(path=output_path)
        await self.registry.register(processed.download_id)
        logger.info(f"Saved {processed.download_id} for {name}")

        self._reclaim(uploaded)
        return processed

    def _reclaim(self, uploaded: UploadedFile) -> None:
        """Best-effort deletion of the original upload."""
        try:
            self.storage.discard(uploaded.path)
        except CleanupError as e:
            logger.error(f"Could not delete original upload: {e}")

    def _handle_failed_upload(self, uploaded: UploadedFile) -> None:
        if self.retain_failed_uploads:
            logger.warning(f"Retaining {uploaded.path.name} after failure for diagnostics")
            return
        self._reclaim(uploaded)
