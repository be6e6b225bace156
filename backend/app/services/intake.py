"""
Intake gate: validates an upload and gives it an identity on disk.

Responsibilities:
- Require both the declared MIME type and the file extension to be an
  allowed image type (jpeg, jpg, png, gif)
- Write accepted bytes to the storage area under a fresh unique name
- Leave nothing on disk for rejected uploads
"""

import asyncio
from typing import BinaryIO, Iterable, Optional

from app.core.exceptions import ProcessingError, ValidationError
from app.core.logger import get_logger
from app.core.storage import StorageArea, upload_name
from app.core.utils import file_extension, mime_subtype
from app.models.file_models import UploadedFile

logger = get_logger(__name__)


class IntakeGate:
    """Accepts image uploads into the shared storage area."""

    def __init__(self, storage: StorageArea, allowed_types: Iterable[str]):
        self.storage = storage
        self.allowed_types = frozenset(t.lower() for t in allowed_types)

    def validate(self, filename: Optional[str], content_type: Optional[str]) -> str:
        """
        Check an upload's declared type.

        Args:
            filename: Client-supplied file name
            content_type: Declared MIME type

        Returns:
            The lower-cased extension to store the file under

        Raises:
            ValidationError: If either the MIME type or the extension is
                not an allowed image type
        """
        extension = file_extension(filename)
        subtype = mime_subtype(content_type)

        mime_ok = subtype in self.allowed_types
        extension_ok = extension.lstrip(".") in self.allowed_types

        if not (mime_ok and extension_ok):
            logger.warning(
                f"Rejected upload {filename!r} (content type {content_type!r})"
            )
            raise ValidationError()
        return extension

    async def accept(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        source: BinaryIO,
    ) -> UploadedFile:
        """
        Validate an upload and persist it.

        Exactly one file is written for an accepted upload and none for a
        rejected one. The copy runs in the default executor.
        """
        extension = self.validate(filename, content_type)

        loop = asyncio.get_running_loop()
        try:
            path = await loop.run_in_executor(
                None,
                self.storage.write_stream,
                lambda: upload_name(extension),
                source,
            )
        except OSError as e:
            logger.error(f"Failed to save upload {filename!r}: {e}")
            raise ProcessingError("Error saving the upload") from e

        logger.info(f"Accepted upload {filename!r} as {path.name}")
        return UploadedFile(
            path=path,
            original_name=filename,
            mime_type=content_type,
            extension=extension,
        )
