"""
A schemaless record database backed by SQLite, with file assets stored beside it.
"""

import asyncio
import json
import logging
import shutil
import sqlite3
import time
from collections.abc import AsyncIterator
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from itemvault.exceptions import (
    RecordDecodeError,
    RecordNotFoundError,
    RecordStoreError,
)
from itemvault.models.record import Asset, Record, RecordRef

log = logging.getLogger(__name__)

ASSET_MARKER = "__asset__"


@dataclass(frozen=True)
class QueryMatch:
    """The outcome of decoding one record matched by a query."""

    ref: RecordRef
    record: Record | None = None
    error: RecordDecodeError | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class SQLiteRecordDatabase:
    """
    Stores records of any type as JSON field bags.

    Asset fields are uploaded on save by copying the referenced file into
    ``<data_dir>/assets/<record name>/``; reads resolve them to those copies.
    The store assigns each record's creation date on its first save.
    """

    DB_FILENAME = "records.sqlite"

    def __init__(self, data_dir: Path, pool_size: int = 5):
        self.data_dir = data_dir
        self.db_path = data_dir / self.DB_FILENAME
        self.assets_dir = data_dir / "assets"
        self._connection_semaphore = asyncio.Semaphore(pool_size)
        self._initialize_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Gets a new database connection with optimized PRAGMA settings."""
        conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def _initialize_db(self) -> None:
        """Creates the database and table with indexes if they don't exist."""
        try:
            self.assets_dir.mkdir(parents=True, exist_ok=True)
            with closing(self._get_connection()) as conn, conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS records (
                        record_name TEXT PRIMARY KEY NOT NULL,
                        record_type TEXT NOT NULL,
                        fields TEXT NOT NULL,
                        created_at REAL NOT NULL,
                        modified_at REAL NOT NULL
                    );
                    """
                )
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_type_created ON"
                    " records(record_type, created_at);"
                )
        except (OSError, sqlite3.Error) as e:
            raise RecordStoreError(
                f"Failed to initialize record database at '{self.db_path}': {e}"
            ) from e

    async def _run_in_executor(self, func, *args):
        """Runs a synchronous database function within the connection pool semaphore."""
        async with self._connection_semaphore:
            return await asyncio.to_thread(func, *args)

    # Field encoding

    def _upload_asset(self, ref: RecordRef, key: str, asset: Asset) -> str:
        """Copies an asset's file into the asset area and returns its relative path."""
        source = Path(asset.file_path)
        if not source.is_file():
            raise RecordStoreError(
                f"Asset file for field '{key}' does not exist: '{source}'"
            )
        record_dir = self.assets_dir / ref.record_name
        record_dir.mkdir(parents=True, exist_ok=True)
        destination = record_dir / f"{key}{source.suffix}"
        if source.resolve() != destination.resolve():
            shutil.copyfile(source, destination)
        return destination.relative_to(self.data_dir).as_posix()

    def _encode_fields(self, record: Record) -> str:
        encoded: dict[str, Any] = {}
        for key, value in record.fields.items():
            if isinstance(value, Asset):
                encoded[key] = {ASSET_MARKER: self._upload_asset(record.ref, key, value)}
            else:
                encoded[key] = value
        try:
            return json.dumps(encoded)
        except (TypeError, ValueError) as e:
            raise RecordStoreError(
                f"Record '{record.ref}' has a field that cannot be stored: {e}"
            ) from e

    def _decode_fields(self, ref: RecordRef, raw: str) -> dict[str, Any]:
        try:
            stored = json.loads(raw)
        except json.JSONDecodeError as e:
            raise RecordDecodeError(f"Record '{ref}' has corrupt fields: {e}") from e
        if not isinstance(stored, dict):
            raise RecordDecodeError(f"Record '{ref}' fields are not a key/value bag.")

        fields: dict[str, Any] = {}
        for key, value in stored.items():
            if isinstance(value, dict) and ASSET_MARKER in value:
                path = self.data_dir / value[ASSET_MARKER]
                if path.is_file():
                    fields[key] = Asset(path)
                else:
                    log.debug(f"Asset '{key}' of record '{ref}' is missing on disk.")
                    fields[key] = None
            else:
                fields[key] = value
        return fields

    @staticmethod
    def _to_datetime(epoch: float) -> datetime:
        return datetime.fromtimestamp(epoch, tz=timezone.utc)

    # Save

    def _save_sync(self, record: Record) -> Record:
        is_new = False
        try:
            with closing(self._get_connection()) as conn, conn:
                row = conn.execute(
                    "SELECT record_type, created_at FROM records WHERE record_name = ?",
                    (record.ref.record_name,),
                ).fetchone()
                if row and row[0] != record.record_type:
                    raise RecordStoreError(
                        f"Record '{record.ref}' already exists with type '{row[0]}'."
                    )
                is_new = row is None
                fields_json = self._encode_fields(record)
                now = time.time()
                if is_new:
                    created_at = now
                    conn.execute(
                        "INSERT INTO records (record_name, record_type, fields,"
                        " created_at, modified_at) VALUES (?, ?, ?, ?, ?)",
                        (
                            record.ref.record_name,
                            record.record_type,
                            fields_json,
                            created_at,
                            now,
                        ),
                    )
                else:
                    created_at = row[1]
                    conn.execute(
                        "UPDATE records SET fields = ?, modified_at = ?"
                        " WHERE record_name = ?",
                        (fields_json, now, record.ref.record_name),
                    )
        except RecordStoreError:
            if is_new:
                self._remove_assets(record.ref)
            raise
        except (OSError, sqlite3.Error) as e:
            if is_new:
                self._remove_assets(record.ref)
            raise RecordStoreError(f"Error saving record '{record.ref}': {e}") from e

        return Record(
            record_type=record.record_type,
            ref=record.ref,
            fields=self._decode_fields(record.ref, fields_json),
            creation_date=self._to_datetime(created_at),
        )

    async def save(self, record: Record) -> Record:
        """
        Saves a record, uploading its assets, and returns the committed copy.

        Raises:
            RecordStoreError: If the record or one of its assets cannot be stored.
        """
        return await self._run_in_executor(self._save_sync, record)

    # Query

    def _query_sync(
        self, record_type: str, ascending: bool
    ) -> list[tuple[str, str, float]]:
        order = "ASC" if ascending else "DESC"
        try:
            with closing(self._get_connection()) as conn:
                cursor = conn.execute(
                    "SELECT record_name, fields, created_at FROM records"  # noqa: S608
                    f" WHERE record_type = ? ORDER BY created_at {order}, rowid {order}",
                    (record_type,),
                )
                return cursor.fetchall()
        except sqlite3.Error as e:
            raise RecordStoreError(
                f"Query for records of type '{record_type}' failed: {e}"
            ) from e

    async def query(
        self, record_type: str, ascending: bool = True
    ) -> AsyncIterator[QueryMatch]:
        """
        Yields every record of ``record_type`` ordered by creation date.

        A record that cannot be decoded is yielded as a failed match rather
        than ending the query.

        Raises:
            RecordStoreError: If the query itself fails.
        """
        rows = await self._run_in_executor(self._query_sync, record_type, ascending)
        for record_name, fields_json, created_at in rows:
            ref = RecordRef(record_name)
            try:
                fields = self._decode_fields(ref, fields_json)
            except RecordDecodeError as e:
                yield QueryMatch(ref=ref, error=e)
                continue
            yield QueryMatch(
                ref=ref,
                record=Record(
                    record_type=record_type,
                    ref=ref,
                    fields=fields,
                    creation_date=self._to_datetime(created_at),
                ),
            )

    # Delete

    def _remove_assets(self, ref: RecordRef) -> None:
        record_dir = self.assets_dir / ref.record_name
        if not record_dir.exists():
            return
        try:
            shutil.rmtree(record_dir)
        except OSError as e:
            log.warning(f"Failed to remove assets of record '{ref}': {e}")

    def _delete_sync(self, record_type: str, ref: RecordRef) -> RecordRef:
        try:
            with closing(self._get_connection()) as conn, conn:
                cursor = conn.execute(
                    "DELETE FROM records WHERE record_name = ? AND record_type = ?",
                    (ref.record_name, record_type),
                )
                deleted = cursor.rowcount
        except sqlite3.Error as e:
            raise RecordStoreError(f"Error deleting record '{ref}': {e}") from e

        if not deleted:
            raise RecordNotFoundError(f"Record '{ref}' does not exist.")
        self._remove_assets(ref)
        return ref

    async def delete(self, record_type: str, ref: RecordRef) -> RecordRef:
        """
        Deletes a record and its assets by identifier.

        Raises:
            RecordNotFoundError: If no record of that type has the identifier.
            RecordStoreError: If the delete fails.
        """
        return await self._run_in_executor(self._delete_sync, record_type, ref)
