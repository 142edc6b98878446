"""
Wires the catalog to its collaborators for one run of the application.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from itemvault.api.client import RecordStoreClient
from itemvault.media.fetcher import AssetFetcher
from itemvault.media.viewer import open_in_file_viewer
from itemvault.models.config import VaultConfig
from itemvault.storage.records import SQLiteRecordDatabase
from itemvault.storage.staging import StagingStore
from itemvault.utils.structured_logger import CatalogLogger

from .catalog import ItemCatalog

log = logging.getLogger(__name__)


@asynccontextmanager
async def catalog_session(
    config: VaultConfig,
    events: CatalogLogger | None = None,
    open_viewer: bool | None = None,
) -> AsyncIterator[ItemCatalog]:
    """
    Builds an :class:`ItemCatalog` from the configuration and closes its
    network session on exit.

    Raises:
        RecordStoreError: If the record database cannot be opened.
    """
    staging = StagingStore(config.documents_path)
    database = SQLiteRecordDatabase(config.data_path)
    store = RecordStoreClient(database, staging, record_type=config.record_type)
    use_viewer = config.open_viewer if open_viewer is None else open_viewer

    fetcher = AssetFetcher()
    try:
        yield ItemCatalog(
            fetcher,
            staging,
            store,
            config.asset_url,
            viewer=open_in_file_viewer if use_viewer else None,
            events=events,
        )
    finally:
        await fetcher.close()
        log.debug("Catalog session closed.")
