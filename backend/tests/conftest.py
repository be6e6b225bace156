import asyncio
import io
import os
import tempfile
from pathlib import Path

# Keep the module-level app in app.main away from the working directory
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="bgremove-test-"))

import pytest
from PIL import Image
from fastapi.testclient import TestClient

from app.core.storage import StorageArea
from app.main import create_app
from app.services.registry import DownloadRegistry
from app.services.removal_engine import BackgroundRemovalEngine


def make_image_bytes(fmt: str = "PNG", size=(32, 32), color=None) -> bytes:
    mode = "RGBA" if fmt == "PNG" else "RGB"
    if color is None:
        color = (200, 30, 30, 255) if mode == "RGBA" else (200, 30, 30)
    img = Image.new(mode, size, color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


class FakeEngine(BackgroundRemovalEngine):
    """Stands in for rembg: records calls and returns, fails or stalls."""

    def __init__(self, result: bytes = None, error: Exception = None, delay: float = 0):
        self.result = result if result is not None else make_image_bytes("PNG", color=(0, 0, 0, 0))
        self.error = error
        self.delay = delay
        self.calls = []
        self.input_existed = []

    async def remove(self, image_path):
        path = Path(image_path)
        self.calls.append(path)
        self.input_existed.append(path.exists())
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def stored_names(storage: StorageArea):
    return sorted(p.name for p in storage.iter_files())


@pytest.fixture
def storage(tmp_path):
    return StorageArea(tmp_path / "uploads")


@pytest.fixture
def registry():
    return DownloadRegistry()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG")


@pytest.fixture
def app(storage, engine):
    return create_app(storage=storage, engine=engine)


@pytest.fixture
def client(app):
    return TestClient(app)
