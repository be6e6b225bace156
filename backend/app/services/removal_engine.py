"""
Background removal engine adapters.

The engine is opaque to the rest of the service: it receives the path of
an accepted upload and resolves with PNG bytes, or raises.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from app.core.logger import get_logger

logger = get_logger(__name__)


class BackgroundRemovalEngine(ABC):
    """Asynchronous `remove(path) -> bytes` boundary."""

    @abstractmethod
    async def remove(self, image_path: Union[str, Path]) -> bytes:
        """Return PNG bytes of the image at `image_path` without its background."""


class RembgEngine(BackgroundRemovalEngine):
    """
    Removes backgrounds with rembg.

    rembg is synchronous and CPU/GPU bound, so each call runs in the
    default executor to keep the event loop serving other requests.
    The model session is created lazily on first use and then shared.
    """

    def __init__(self, model_name: str = "u2net"):
        self.model_name = model_name
        self._session = None
        self._session_lock = threading.Lock()

    def _get_session(self):
        with self._session_lock:
            if self._session is None:
                # Lazy import to avoid loading onnxruntime at startup
                from rembg import new_session

                logger.info(f"Loading rembg model {self.model_name}")
                self._session = new_session(self.model_name)
        return self._session

    def _remove_sync(self, image_path: Union[str, Path]) -> bytes:
        from rembg import remove

        with open(image_path, "rb") as f:
            data = f.read()
        return remove(data, session=self._get_session())

    async def remove(self, image_path: Union[str, Path]) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._remove_sync, image_path)


_engine_instance: Optional[RembgEngine] = None

def get_engine(model_name: str = "u2net") -> RembgEngine:
    """Get or create singleton RembgEngine instance."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = RembgEngine(model_name)
    return _engine_instance
