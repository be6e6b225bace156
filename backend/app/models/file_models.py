"""
Descriptors for files moving through the storage area.

Responsibilities:
- UploadedFile: an accepted input awaiting background removal
- ProcessedFile: a result waiting for its single download
"""

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field


class UploadedFile(BaseModel):
    """An upload that passed validation and was written to storage."""
    path: Path = Field(..., description="Location in the storage area, unique per upload")
    original_name: str = Field(..., description="Client-supplied file name")
    mime_type: str = Field(..., description="Declared MIME type")
    extension: str = Field(..., description="Lower-cased extension, including the dot")


class ProcessedFile(BaseModel):
    """A background-removed image available for one download."""
    path: Path = Field(..., description="Location in the storage area")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="When the result was written")

    @property
    def download_id(self) -> str:
        return self.path.name
