"""
Shared storage area for transient uploads and processed results.

A single local directory holds both inputs and outputs. There is no
database: a file existing under its generated name is the record that
the upload or result exists. Every name written here is drawn from a
millisecond timestamp plus a random token and created exclusively, so
concurrent requests never overwrite each other's files.
"""

import os
import shutil
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Union

from app.core.exceptions import CleanupError, NotFoundError
from app.core.logger import get_logger

logger = get_logger(__name__)

RESULT_PREFIX = "processed_"
RESULT_EXTENSION = ".png"
MAX_NAME_ATTEMPTS = 5
COPY_CHUNK_SIZE = 1024 * 1024


def unique_token() -> str:
    """Millisecond timestamp joined with a random hex token."""
    return f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


def upload_name(extension: str) -> str:
    """Name for an accepted upload, keeping its original extension."""
    return f"{unique_token()}{extension.lower()}"


def result_name() -> str:
    """Name for a processed result; doubles as its download id."""
    return f"{RESULT_PREFIX}{unique_token()}{RESULT_EXTENSION}"


class StorageArea:
    """Filesystem-backed store shared by intake, processing and retrieval."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.ensure()

    def ensure(self) -> None:
        """Create the storage directory if it does not exist yet."""
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, name: str) -> Path:
        """
        Map a bare file name to a path inside the storage root.

        Args:
            name: File name as used in URLs (no directories)

        Returns:
            Absolute path inside the storage root

        Raises:
            NotFoundError: If the name is empty, contains separators or
                escapes the storage root
        """
        if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
            raise NotFoundError()

        path = (self.root / name).resolve()
        if path.parent != self.root:
            raise NotFoundError()
        return path

    def exists(self, name: str) -> bool:
        try:
            return self.resolve(name).is_file()
        except NotFoundError:
            return False

    def write_new(self, make_name: Callable[[], str], writer: Callable[[BinaryIO], None]) -> Path:
        """
        Create a fresh file under a generated name and fill it.

        The file is opened in exclusive-create mode; if the name already
        exists a new one is drawn. If the writer fails, the partial file is
        removed before the error propagates.

        Args:
            make_name: Name generator (upload_name / result_name)
            writer: Callable receiving the open binary file

        Returns:
            Path of the written file
        """
        for _ in range(MAX_NAME_ATTEMPTS):
            path = self.root / make_name()
            try:
                handle = open(path, "xb")
            except FileExistsError:
                logger.warning(f"Name collision on {path.name}, drawing a new name")
                continue

            try:
                with handle:
                    writer(handle)
            except BaseException:
                self._remove_partial(path)
                raise
            return path

        raise FileExistsError(f"Could not allocate a unique name in {self.root}")

    def write_bytes(self, make_name: Callable[[], str], data: bytes) -> Path:
        """Persist raw bytes under a generated name."""
        return self.write_new(make_name, lambda handle: handle.write(data))

    def write_stream(self, make_name: Callable[[], str], source: BinaryIO) -> Path:
        """Copy a readable binary stream under a generated name."""
        return self.write_new(
            make_name,
            lambda handle: shutil.copyfileobj(source, handle, COPY_CHUNK_SIZE),
        )

    def discard(self, path: Union[str, Path]) -> None:
        """
        Delete a file from the storage area.

        Raises:
            CleanupError: If the file cannot be removed
        """
        try:
            os.unlink(path)
        except OSError as e:
            raise CleanupError(f"Failed to delete {Path(path).name}: {e}") from e
        logger.info(f"Deleted {Path(path).name} from storage")

    def iter_files(self) -> Iterator[Path]:
        """Yield every regular file currently in the storage area."""
        with os.scandir(self.root) as entries:
            for entry in entries:
                if entry.is_file(follow_symlinks=False):
                    yield Path(entry.path)

    @staticmethod
    def age_seconds(path: Path, now: float = None) -> float:
        """Seconds since the file was last modified."""
        now = time.time() if now is None else now
        return now - path.stat().st_mtime

    def _remove_partial(self, path: Path) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove partial file {path.name}: {e}")
