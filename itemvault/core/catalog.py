"""
The item catalog: the single owner of the state the presentation layer renders.
"""

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path

from itemvault.api.client import RecordStoreClient
from itemvault.exceptions import (
    FilesystemError,
    InvalidNameError,
    InvalidSelectionError,
    ItemVaultError,
    NetworkError,
    RecordNotFoundError,
    RecordStoreError,
)
from itemvault.media.fetcher import AssetFetcher
from itemvault.models.item import ASSET_FIELD, Item
from itemvault.models.record import Asset, RecordRef
from itemvault.models.state import CatalogError, CatalogState, LoadStatus
from itemvault.storage.staging import StagingStore
from itemvault.utils.formatting import format_size
from itemvault.utils.structured_logger import CatalogLogger

log = logging.getLogger(__name__)

StateListener = Callable[[CatalogState], None]
Viewer = Callable[[Path], bool]


class ItemCatalog:
    """
    Keeps the ordered list of items in sync with the record store.

    Background work (network, disk, database) only computes values; every
    state change is applied here, on the event loop, after that work returns.
    Operations never raise for expected failures: they publish a
    :class:`CatalogError` on the state and return a falsy value.
    """

    def __init__(
        self,
        fetcher: AssetFetcher,
        staging: StagingStore,
        store: RecordStoreClient,
        asset_url: str,
        viewer: Viewer | None = None,
        events: CatalogLogger | None = None,
    ):
        self.fetcher = fetcher
        self.staging = staging
        self.store = store
        self.asset_url = asset_url
        self.viewer = viewer
        self.events = events
        self._state = CatalogState()
        self._listeners: list[StateListener] = []
        self._in_flight: Counter[str] = Counter()
        # Confirmation sequence per created ref, until a reload has seen it
        self._confirmations = 0
        self._confirmed: dict[RecordRef, int] = {}

    # Observation

    @property
    def state(self) -> CatalogState:
        return self._state

    @property
    def items(self) -> tuple[Item, ...]:
        return self._state.items

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Registers a listener for state changes; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                log.exception("Catalog state listener failed.")

    @contextmanager
    def _operation(self, flag: str) -> Iterator[None]:
        """Raises ``flag`` while the operation runs and clears the last error."""
        self._in_flight[flag] += 1
        self._publish(**{flag: True, "error": None})
        try:
            yield
        finally:
            self._in_flight[flag] -= 1
            self._publish(**{flag: self._in_flight[flag] > 0})

    def _report(self, operation: str, error: ItemVaultError) -> None:
        log.error(f"[red]✗ {operation.capitalize()} failed: {error}[/red]")
        self._publish(error=CatalogError.from_exception(operation, error))

    # Item lookup

    def _index_of(self, ref: RecordRef) -> int | None:
        for index, item in enumerate(self._state.items):
            if item.record_ref == ref:
                return index
        return None

    def _without(self, ref: RecordRef) -> tuple[Item, ...]:
        return tuple(item for item in self._state.items if item.record_ref != ref)

    def _with_replaced(self, ref: RecordRef, new_item: Item) -> tuple[Item, ...]:
        return tuple(
            new_item if item.record_ref == ref else item for item in self._state.items
        )

    def item_at(self, index: int) -> Item:
        """
        Resolves a list position to an item.

        Raises:
            InvalidSelectionError: If the position is out of range.
        """
        items = self._state.items
        if index < 0 or index >= len(items):
            raise InvalidSelectionError(
                f"No item at position {index}; the catalog has {len(items)} items."
            )
        return items[index]

    # Input

    def set_text(self, text: str) -> None:
        """Updates the pending name typed by the user."""
        self._publish(text=text)

    async def submit(self) -> Item | None:
        """Adds an item named after the pending text, if there is any."""
        text = self._state.text
        if not text.strip():
            return None
        return await self.add_item(text)

    # Operations

    async def load_all(self) -> bool:
        """
        Replaces the catalog with every record in the store, oldest first.

        Items still waiting for their create to finish, or confirmed after
        the query started, stay at the end.
        """
        with self._operation("is_loading"):
            start_time = time.monotonic()
            seen = self._confirmations
            try:
                loaded = await self.store.query_all()
            except RecordStoreError as e:
                self._publish(load_status=LoadStatus.FAILED)
                if self.events:
                    self.events.catalog_load_failed(str(e))
                self._report("load", e)
                return False

            loaded_refs = {item.record_ref for item in loaded}
            unsynced = tuple(
                item
                for item in self._state.items
                if item.record_ref not in loaded_refs
                and (item.pending or self._confirmed.get(item.record_ref, 0) > seen)
            )
            for ref in loaded_refs:
                self._confirmed.pop(ref, None)
            self._publish(items=tuple(loaded) + unsynced, load_status=LoadStatus.LOADED)
            log.info(f"Items fetched from store: {len(loaded)}")
            if self.events:
                self.events.catalog_loaded(len(loaded), time.monotonic() - start_time)
            return True

    async def add_item(self, name: str) -> Item | None:
        """
        Fetches the asset, stages it, and saves it as a new record named ``name``.

        The new item is appended as soon as its record is built and confirmed
        once the store accepts it. On failure the catalog and the pending text
        are left as they were before the call.
        """
        with self._operation("is_adding"):
            name = name.strip() if name else ""
            if not name:
                self._report("add", InvalidNameError("Item name cannot be empty."))
                return None

            stage = "fetch"
            try:
                fetched = await self.fetcher.fetch(self.asset_url)
                stage = "stage"
                staged_path = await self.staging.stage(fetched.data)
            except (NetworkError, FilesystemError) as e:
                if self.events:
                    self.events.item_add_failed(name, stage, str(e))
                self._report("add", e)
                return None
            log.info(f"Data written: {format_size(fetched.size)} for '{name}'")

            record = self.store.new_record(name, staged_path, fetched.content_type)
            pending = Item(
                name=name,
                record_ref=record.ref,
                content_type=fetched.content_type,
                asset_bytes=fetched.data,
                asset_local_path=staged_path,
                pending=True,
            )
            self._publish(items=self._state.items + (pending,))

            try:
                saved = await self.store.create(record)
            except RecordStoreError as e:
                self._publish(items=self._without(record.ref))
                if self.events:
                    self.events.item_add_failed(name, "create", str(e))
                self._report("add", e)
                return None
            finally:
                await self.staging.discard(staged_path)

            stored = saved[ASSET_FIELD]
            confirmed = replace(
                pending,
                created_at=saved.creation_date,
                asset_local_path=stored.file_path if isinstance(stored, Asset) else None,
                pending=False,
            )
            self._confirmations += 1
            self._confirmed[record.ref] = self._confirmations
            text = self._state.text
            self._publish(
                items=self._with_replaced(record.ref, confirmed),
                text="" if text.strip() == name else text,
            )
            if self.events:
                self.events.item_added(
                    record.ref.record_name, name, fetched.size, fetched.content_type
                )
            return confirmed

    async def download_item(self, target: Item | RecordRef) -> Item | None:
        """
        Materializes an item's asset locally and hands it to the file viewer.

        Returns:
            The materialized item with its bytes and local path, or None.
        """
        ref = target.record_ref if isinstance(target, Item) else target
        with self._operation("is_downloading"):
            try:
                item = await self.store.fetch_and_materialize(ref)
            except (RecordStoreError, FilesystemError) as e:
                if self.events:
                    self.events.item_download_failed(ref.record_name, str(e))
                self._report("download", e)
                return None

            log.info(f"Downloaded '{item.name}' to '{item.asset_local_path}'")
            if self.events:
                self.events.item_downloaded(
                    ref.record_name,
                    item.name,
                    str(item.asset_local_path),
                    item.size or 0,
                )
            if self.viewer and item.asset_local_path:
                await asyncio.to_thread(self.viewer, item.asset_local_path)
            return item

    async def delete_item(self, ref: RecordRef) -> bool:
        """
        Deletes the record ``ref`` and removes its row.

        The row disappears immediately and is put back in place if the store
        rejects the delete. A record the store no longer has counts as deleted.
        """
        with self._operation("is_deleting"):
            index = self._index_of(ref)
            removed = self._state.items[index] if index is not None else None
            if removed is not None:
                self._publish(items=self._without(ref))

            try:
                await self.store.delete(ref)
            except RecordNotFoundError:
                log.info(f"Record '{ref}' was already deleted from the store.")
            except RecordStoreError as e:
                if removed is not None and self._index_of(ref) is None:
                    items = list(self._state.items)
                    items.insert(min(index, len(items)), removed)
                    self._publish(items=tuple(items))
                if self.events:
                    self.events.item_delete_failed(ref.record_name, str(e))
                self._report("delete", e)
                return False

            self._confirmed.pop(ref, None)
            if self.events:
                self.events.item_deleted(
                    ref.record_name, removed.name if removed else None
                )
            return True

    async def delete_at(self, index: int) -> bool:
        """Deletes the item at a list position."""
        try:
            item = self.item_at(index)
        except InvalidSelectionError as e:
            self._report("delete", e)
            return False
        return await self.delete_item(item.record_ref)
