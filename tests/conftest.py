import asyncio
import itertools

import pytest

from itemvault.api.client import RecordStoreClient
from itemvault.core.catalog import ItemCatalog
from itemvault.exceptions import RecordStoreError
from itemvault.media.fetcher import FetchedAsset
from itemvault.storage.records import SQLiteRecordDatabase
from itemvault.storage.staging import StagingStore

ASSET_URL = "https://assets.example.test/archive"
ZIP_TYPE = "application/zip"


class StubFetcher:
    """Serves canned payloads in order; the last payload repeats."""

    def __init__(self, payloads=None, content_type=ZIP_TYPE, error=None):
        self.payloads = payloads or [b"PK\x03\x04payload"]
        self.content_type = content_type
        self.error = error
        self.calls = []
        self.closed = False
        self._counter = itertools.count()

    async def fetch(self, url):
        self.calls.append(url)
        index = min(next(self._counter), len(self.payloads) - 1)
        await asyncio.sleep(0)
        if self.error:
            raise self.error
        return FetchedAsset(data=self.payloads[index], content_type=self.content_type)

    async def close(self):
        self.closed = True


class FailingSaveDatabase(SQLiteRecordDatabase):
    async def save(self, record):
        raise RecordStoreError("save rejected by store")


class FailingDeleteDatabase(SQLiteRecordDatabase):
    async def delete(self, record_type, ref):
        raise RecordStoreError("delete rejected by store")


class FailingQueryDatabase(SQLiteRecordDatabase):
    async def query(self, record_type, ascending=True):
        raise RecordStoreError("query rejected by store")
        yield  # pragma: no cover


@pytest.fixture
def documents_dir(tmp_path):
    return tmp_path / "documents"


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def build_catalog(documents_dir, data_dir):
    """Returns a factory; call it inside the running event loop."""

    def _build(fetcher=None, database_cls=SQLiteRecordDatabase, viewer=None):
        staging = StagingStore(documents_dir)
        store = RecordStoreClient(database_cls(data_dir), staging)
        return ItemCatalog(
            fetcher or StubFetcher(), staging, store, ASSET_URL, viewer=viewer
        )

    return _build


class SnapshotFirstDatabase(SQLiteRecordDatabase):
    """Takes the query snapshot, then holds its results until released."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.snapshot_taken = asyncio.Event()
        self.release_query = asyncio.Event()

    async def query(self, record_type, ascending=True):
        matches = [match async for match in super().query(record_type, ascending)]
        self.snapshot_taken.set()
        await self.release_query.wait()
        for match in matches:
            yield match


class HeldSaveDatabase(SQLiteRecordDatabase):
    """Blocks every save until released."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.save_started = asyncio.Event()
        self.release_save = asyncio.Event()

    async def save(self, record):
        self.save_started.set()
        await self.release_save.wait()
        return await super().save(record)
