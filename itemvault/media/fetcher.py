"""
Handles the single HTTP GET that pulls a remote asset into memory.
"""

import asyncio
import logging
from dataclasses import dataclass, field

import aiohttp

from itemvault.exceptions import NetworkError
from itemvault.utils.formatting import format_size

log = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class FetchedAsset:
    """Raw payload and declared MIME type of a fetched asset."""

    data: bytes = field(repr=False)
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


class AssetFetcher:
    """
    Fetches a remote asset with one plain GET.

    There is no retry, no range support, and no overall timeout; a fetch runs
    until it completes or fails.
    """

    def __init__(self, session: aiohttp.ClientSession | None = None):
        self._session = session
        self._owns_session = session is None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Gets or creates the ClientSession used for fetches."""
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=None),
                )
                self._owns_session = True
                log.debug("Created asset fetcher session.")
            return self._session

    async def close(self) -> None:
        """Closes the session if this fetcher created it."""
        async with self._session_lock:
            if self._owns_session and self._session and not self._session.closed:
                await self._session.close()
                log.debug("Asset fetcher session closed.")
            self._session = None

    async def __aenter__(self) -> "AssetFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch(self, url: str) -> FetchedAsset:
        """
        Downloads the asset at ``url`` fully into memory.

        Raises:
            NetworkError: On a transport failure or a non-2xx response.
        """
        session = await self._get_session()
        try:
            async with session.get(url, allow_redirects=True) as response:
                response.raise_for_status()
                data = await response.read()
                content_type = response.content_type or DEFAULT_CONTENT_TYPE
        except aiohttp.ClientResponseError as e:
            raise NetworkError(
                f"Asset request to '{url}' failed with status {e.status}: {e.message}"
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Could not download asset from '{url}': {e}") from e

        log.debug(f"Asset downloaded: {format_size(len(data))} ({content_type})")
        return FetchedAsset(data=data, content_type=content_type)
