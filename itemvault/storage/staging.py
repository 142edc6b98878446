"""
Writes fetched payloads into the application's private documents directory.
"""

import asyncio
import logging
from pathlib import Path

import aiofiles

from itemvault.exceptions import FilesystemError
from itemvault.utils.formatting import format_size
from itemvault.utils.path import (
    DEFAULT_STAGING_SUFFIX,
    create_dir,
    item_filename,
    unique_staging_name,
)

log = logging.getLogger(__name__)


class StagingStore:
    """
    Stages payloads on local disk before they are uploaded into a record.

    Every call to :meth:`stage` writes to a fresh ``archive-<id>`` file, so
    concurrent adds never share a path.
    """

    def __init__(self, documents_dir: Path):
        self.documents_dir = documents_dir

    async def _resolve_directory(self) -> Path:
        try:
            await asyncio.to_thread(create_dir, self.documents_dir)
        except OSError as e:
            raise FilesystemError(
                f"Could not resolve documents directory '{self.documents_dir}': {e}"
            ) from e
        return self.documents_dir

    async def _write(self, path: Path, data: bytes) -> None:
        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise FilesystemError(f"Error writing data to '{path}': {e}") from e

    async def stage(self, data: bytes, suffix: str = DEFAULT_STAGING_SUFFIX) -> Path:
        """
        Writes ``data`` to a unique staging file and returns its path.

        Raises:
            FilesystemError: If the directory cannot be created or the write fails.
        """
        directory = await self._resolve_directory()
        path = directory / unique_staging_name(suffix)
        await self._write(path, data)
        log.debug(f"Data written: {format_size(len(data))} to '{path.name}'")
        return path

    async def write_named(
        self,
        name: str,
        data: bytes,
        content_type: str | None = None,
        tag: str | None = None,
    ) -> Path:
        """
        Writes a materialized item under a filename derived from its name and
        ``tag``, replacing any earlier download of the same item.
        """
        directory = await self._resolve_directory()
        path = directory / item_filename(name, content_type, tag)
        await self._write(path, data)
        log.debug(f"Materialized '{name}' to '{path}'")
        return path

    async def discard(self, path: Path) -> None:
        """Removes a staged file; one that is already gone is ignored."""
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            log.warning(f"Could not remove staged file '{path.name}': {e}")
