"""
Client for the remote record store, scoped to a single record type.
"""

import logging
from pathlib import Path

import aiofiles

from itemvault.exceptions import (
    FilesystemError,
    RecordDecodeError,
    RecordNotFoundError,
)
from itemvault.models.config import DEFAULT_RECORD_TYPE
from itemvault.models.item import ASSET_FIELD, FILE_TYPE_FIELD, NAME_FIELD, Item
from itemvault.models.record import Asset, Record, RecordRef
from itemvault.storage.records import SQLiteRecordDatabase
from itemvault.storage.staging import StagingStore

log = logging.getLogger(__name__)

# Leading characters of the record name added to materialized filenames
FILENAME_TAG_LENGTH = 8


class RecordStoreClient:
    """
    Create, list, materialize, and delete records of one record type.

    Args:
        database: The record database backend.
        staging: Where materialized downloads are written.
        record_type: The record type every operation is scoped to.
    """

    def __init__(
        self,
        database: SQLiteRecordDatabase,
        staging: StagingStore,
        record_type: str = DEFAULT_RECORD_TYPE,
    ):
        self.database = database
        self.staging = staging
        self.record_type = record_type

    def new_record(
        self, name: str, asset_path: Path, content_type: str | None
    ) -> Record:
        """Builds an unsaved record with a fresh client-side identifier."""
        record = Record(record_type=self.record_type)
        record[NAME_FIELD] = name
        record[ASSET_FIELD] = Asset(asset_path)
        if content_type:
            record[FILE_TYPE_FIELD] = content_type
        return record

    async def create(self, record: Record) -> Record:
        """Saves a new record and returns the committed copy."""
        saved = await self.database.save(record)
        log.debug(f"Record saved: {saved.ref} ({saved[NAME_FIELD]!r})")
        return saved

    async def _matches(self):
        """Decodes every record of the type, skipping the ones that fail."""
        async for match in self.database.query(self.record_type, ascending=True):
            if not match.ok:
                log.warning(f"Skipping record '{match.ref}': {match.error}")
                continue
            try:
                yield match.record, Item.from_record(match.record)
            except RecordDecodeError as e:
                log.warning(f"Skipping record '{match.ref}': {e}")

    async def query_all(self) -> list[Item]:
        """
        Returns every decodable record as an item, oldest first.

        Raises:
            RecordStoreError: If the query itself fails.
        """
        items = [item async for _, item in self._matches()]
        log.debug(f"Fetched {len(items)} items of type '{self.record_type}'.")
        return items

    async def fetch_and_materialize(self, ref: RecordRef) -> Item:
        """
        Resolves a record's asset to local bytes and writes them to the
        documents directory.

        When several records match, the last one wins.

        Raises:
            RecordNotFoundError: If no decodable record has the identifier.
            FilesystemError: If the asset cannot be read or written.
            RecordStoreError: If the query fails.
        """
        found: Item | None = None
        async for record, item in self._matches():
            if record.ref == ref:
                found = item
        if found is None or found.asset_local_path is None:
            raise RecordNotFoundError(f"Record '{ref}' does not exist.")

        try:
            async with aiofiles.open(found.asset_local_path, "rb") as f:
                data = await f.read()
        except OSError as e:
            raise FilesystemError(
                f"Could not read asset of '{found.name}' from "
                f"'{found.asset_local_path}': {e}"
            ) from e

        local_path = await self.staging.write_named(
            found.name,
            data,
            found.content_type,
            tag=found.record_ref.record_name[:FILENAME_TAG_LENGTH],
        )
        return Item(
            name=found.name,
            record_ref=found.record_ref,
            content_type=found.content_type,
            asset_bytes=data,
            asset_local_path=local_path,
            created_at=found.created_at,
        )

    async def delete(self, ref: RecordRef) -> RecordRef:
        """
        Deletes a record by identifier and returns the identifier.

        Raises:
            RecordNotFoundError: If the record does not exist.
            RecordStoreError: If the delete fails.
        """
        deleted = await self.database.delete(self.record_type, ref)
        log.debug(f"Record deleted: {deleted}")
        return deleted
