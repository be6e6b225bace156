"""
General utility functions.

Responsibilities:
- File name helpers (extension extraction)
- MIME type normalization for upload validation
"""

import os
from typing import Optional


def file_extension(filename: Optional[str]) -> str:
    """Lower-cased extension of a client-supplied file name, with the dot."""
    if not filename:
        return ""
    return os.path.splitext(os.path.basename(filename))[1].lower()


def mime_subtype(content_type: Optional[str]) -> Optional[str]:
    """
    Return the subtype of an ``image/*`` MIME type, or None.

    Parameters such as ``; charset=...`` are ignored.
    """
    if not content_type:
        return None
    base = content_type.split(";", 1)[0].strip().lower()
    major, _, minor = base.partition("/")
    if major != "image" or not minor:
        return None
    return minor
