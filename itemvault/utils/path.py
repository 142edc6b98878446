"""
Utilities for naming files in the documents directory.
"""

import mimetypes
import uuid
from pathlib import Path

from pathvalidate import sanitize_filename

STAGING_PREFIX = "archive"
DEFAULT_STAGING_SUFFIX = ".zip"

# mimetypes has no entry for these on some platforms
_EXTENSION_OVERRIDES = {
    "application/zip": ".zip",
    "application/x-zip-compressed": ".zip",
    "application/octet-stream": ".bin",
}


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def unique_staging_name(suffix: str = DEFAULT_STAGING_SUFFIX) -> str:
    """Returns a filename no other staging operation will produce."""
    if suffix and not suffix.startswith("."):
        suffix = f".{suffix}"
    return f"{STAGING_PREFIX}-{uuid.uuid4().hex}{suffix}"


def extension_for_content_type(content_type: str | None) -> str:
    """Maps a MIME type to a file extension, falling back to '.bin'."""
    if not content_type:
        return ".bin"
    mime = content_type.split(";", 1)[0].strip().lower()
    if mime in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[mime]
    return mimetypes.guess_extension(mime) or ".bin"


def item_filename(name: str, content_type: str | None, tag: str | None = None) -> str:
    """
    Builds a safe filename for a materialized item.

    ``tag`` is appended to the stem so items sharing a name get separate files.
    """
    stem = sanitize_filename(name, platform="universal").strip() or "item"
    extension = extension_for_content_type(content_type)
    if stem.lower().endswith(extension) and len(stem) > len(extension):
        stem = stem[: -len(extension)]
    if tag:
        stem = f"{stem}-{sanitize_filename(tag, platform='universal')}"
    return f"{stem}{extension}"
