import asyncio

from conftest import (
    ASSET_URL,
    ZIP_TYPE,
    FailingDeleteDatabase,
    FailingQueryDatabase,
    FailingSaveDatabase,
    HeldSaveDatabase,
    SnapshotFirstDatabase,
    StubFetcher,
)

from itemvault.exceptions import FilesystemError, NetworkError
from itemvault.models.record import Record
from itemvault.models.state import LoadStatus


def test_add_then_load_shows_exactly_one_item(build_catalog):
    async def scenario():
        catalog = build_catalog()
        await catalog.load_all()
        await catalog.add_item("Photo1")
        await catalog.load_all()
        return catalog.state

    state = asyncio.run(scenario())
    assert [item.name for item in state.items] == ["Photo1"]
    assert state.load_status is LoadStatus.LOADED
    assert state.error is None


def test_add_two_megabyte_zip_scenario(build_catalog):
    payload = b"PK" + b"\x00" * (2 * 1024 * 1024 - 2)

    async def scenario():
        catalog = build_catalog(fetcher=StubFetcher([payload], content_type=ZIP_TYPE))
        item = await catalog.add_item("Photo1")
        return catalog, item

    catalog, item = asyncio.run(scenario())
    assert len(catalog.items) == 1
    added = catalog.items[0]
    assert added.name == "Photo1"
    assert added.content_type == "application/zip"
    assert added.asset_local_path is not None
    assert str(added.asset_local_path)
    assert added.asset_local_path.read_bytes() == payload
    assert added.pending is False
    assert added.created_at is not None
    assert item == added
    assert item.size == len(payload)


def test_add_clears_pending_text_on_success(build_catalog):
    async def scenario():
        catalog = build_catalog()
        catalog.set_text("Photo1")
        await catalog.submit()
        return catalog.state

    state = asyncio.run(scenario())
    assert state.text == ""
    assert state.is_adding is False


def test_submit_ignores_blank_text(build_catalog):
    async def scenario():
        fetcher = StubFetcher()
        catalog = build_catalog(fetcher=fetcher)
        catalog.set_text("   ")
        result = await catalog.submit()
        return catalog, fetcher, result

    catalog, fetcher, result = asyncio.run(scenario())
    assert result is None
    assert fetcher.calls == []
    assert catalog.items == ()


def test_add_item_rejects_empty_name(build_catalog):
    async def scenario():
        catalog = build_catalog()
        return catalog, await catalog.add_item("")

    catalog, result = asyncio.run(scenario())
    assert result is None
    assert catalog.state.error.error_type == "InvalidNameError"


def test_add_fetches_the_configured_url(build_catalog):
    async def scenario():
        fetcher = StubFetcher()
        catalog = build_catalog(fetcher=fetcher)
        await catalog.add_item("Photo1")
        return fetcher

    assert asyncio.run(scenario()).calls == [ASSET_URL]


def test_failed_fetch_keeps_text_and_catalog(build_catalog):
    async def scenario():
        catalog = build_catalog(fetcher=StubFetcher(error=NetworkError("offline")))
        catalog.set_text("Photo1")
        result = await catalog.submit()
        return catalog.state, result

    state, result = asyncio.run(scenario())
    assert result is None
    assert state.text == "Photo1"
    assert state.items == ()
    assert state.error.operation == "add"
    assert state.error.error_type == "NetworkError"
    assert state.is_adding is False


def test_failed_staging_is_reported(build_catalog, documents_dir):
    documents_dir.parent.mkdir(parents=True, exist_ok=True)
    documents_dir.write_text("not a directory")

    async def scenario():
        catalog = build_catalog()
        catalog.set_text("Photo1")
        await catalog.submit()
        return catalog.state

    state = asyncio.run(scenario())
    assert state.items == ()
    assert state.text == "Photo1"
    assert state.error.error_type == FilesystemError.__name__


def test_failed_create_rolls_back_optimistic_append(build_catalog):
    seen = []

    async def scenario():
        catalog = build_catalog(database_cls=FailingSaveDatabase)
        catalog.subscribe(lambda state: seen.append(len(state.items)))
        catalog.set_text("Photo1")
        result = await catalog.submit()
        return catalog.state, result

    state, result = asyncio.run(scenario())
    assert result is None
    assert 1 in seen
    assert state.items == ()
    assert state.text == "Photo1"
    assert state.error.error_type == "RecordStoreError"


def test_item_is_pending_until_create_completes(build_catalog):
    pending_flags = []

    async def scenario():
        catalog = build_catalog()
        catalog.subscribe(
            lambda state: pending_flags.extend(item.pending for item in state.items)
        )
        await catalog.add_item("Photo1")

    asyncio.run(scenario())
    assert pending_flags[0] is True
    assert pending_flags[-1] is False


def test_load_is_sorted_by_creation_time_and_idempotent(build_catalog):
    async def scenario():
        catalog = build_catalog()
        for name in ("first", "second", "third"):
            await catalog.add_item(name)
        await catalog.load_all()
        first = catalog.items
        await catalog.load_all()
        return first, catalog.items

    first, second = asyncio.run(scenario())
    assert [item.name for item in first] == ["first", "second", "third"]
    created = [item.created_at for item in first]
    assert created == sorted(created)
    assert first == second


def test_load_skips_records_missing_required_fields(build_catalog, documents_dir):
    async def scenario():
        catalog = build_catalog()
        await catalog.add_item("good-1")

        nameless = catalog.store.new_record("placeholder", documents_dir / "x", None)
        del nameless.fields["name"]
        del nameless.fields["dataFile"]
        await catalog.store.database.save(nameless)

        assetless = Record(record_type=catalog.store.record_type)
        assetless["name"] = "no asset"
        await catalog.store.database.save(assetless)

        await catalog.add_item("good-2")
        await catalog.load_all()
        return catalog.state

    state = asyncio.run(scenario())
    assert [item.name for item in state.items] == ["good-1", "good-2"]
    assert state.load_status is LoadStatus.LOADED


def test_failed_load_is_distinct_from_empty(build_catalog):
    async def scenario():
        catalog = build_catalog(database_cls=FailingQueryDatabase)
        ok = await catalog.load_all()
        return catalog.state, ok

    state, ok = asyncio.run(scenario())
    assert ok is False
    assert state.load_status is LoadStatus.FAILED
    assert state.error.operation == "load"
    assert state.is_loading is False


def test_delete_then_load_never_shows_record(build_catalog):
    async def scenario():
        catalog = build_catalog()
        for name in ("a", "b", "c"):
            await catalog.add_item(name)
        await catalog.load_all()
        target = catalog.items[1]
        ok = await catalog.delete_item(target.record_ref)
        after_delete = len(catalog.items)
        await catalog.load_all()
        return target, ok, after_delete, catalog.items

    target, ok, after_delete, items = asyncio.run(scenario())
    assert ok is True
    assert after_delete == 2
    assert target.record_ref not in {item.record_ref for item in items}
    assert [item.name for item in items] == ["a", "c"]


def test_failed_delete_at_index_zero_keeps_three_items(build_catalog):
    async def scenario():
        catalog = build_catalog(database_cls=FailingDeleteDatabase)
        for name in ("a", "b", "c"):
            await catalog.add_item(name)
        before = catalog.items
        ok = await catalog.delete_at(0)
        return before, catalog.state, ok

    before, state, ok = asyncio.run(scenario())
    assert ok is False
    assert len(state.items) == 3
    assert state.items == before
    assert state.error.operation == "delete"
    assert state.error.error_type == "RecordStoreError"
    assert state.is_deleting is False


def test_delete_of_already_removed_record_succeeds(build_catalog):
    async def scenario():
        catalog = build_catalog()
        item = await catalog.add_item("a")
        await catalog.store.delete(item.record_ref)
        ok = await catalog.delete_item(item.record_ref)
        return catalog.state, ok

    state, ok = asyncio.run(scenario())
    assert ok is True
    assert state.items == ()
    assert state.error is None


def test_delete_at_out_of_range_is_reported(build_catalog):
    async def scenario():
        catalog = build_catalog()
        await catalog.add_item("a")
        ok = await catalog.delete_at(5)
        return catalog.state, ok

    state, ok = asyncio.run(scenario())
    assert ok is False
    assert len(state.items) == 1
    assert state.error.error_type == "InvalidSelectionError"


def test_concurrent_adds_keep_both_payloads(build_catalog):
    payloads = [b"first-payload" * 1000, b"second-payload" * 1000]

    async def scenario():
        catalog = build_catalog(fetcher=StubFetcher(payloads))
        await asyncio.gather(catalog.add_item("one"), catalog.add_item("two"))
        await catalog.load_all()
        downloads = [await catalog.download_item(item) for item in catalog.items]
        return catalog.items, downloads

    items, downloads = asyncio.run(scenario())
    assert sorted(item.name for item in items) == ["one", "two"]
    assert len({item.asset_local_path for item in items}) == 2
    assert sorted(item.asset_bytes for item in downloads) == sorted(payloads)


def test_download_materializes_and_opens_viewer(build_catalog, documents_dir):
    opened = []

    def viewer(path):
        opened.append(path)
        return True

    async def scenario():
        catalog = build_catalog(fetcher=StubFetcher([b"zip-bytes"]), viewer=viewer)
        added = await catalog.add_item("Photo1")
        downloaded = await catalog.download_item(added)
        return catalog.state, added, downloaded

    state, added, downloaded = asyncio.run(scenario())
    tag = added.record_ref.record_name[:8]
    assert downloaded.asset_bytes == b"zip-bytes"
    assert downloaded.asset_local_path == documents_dir / f"Photo1-{tag}.zip"
    assert downloaded.asset_local_path.read_bytes() == b"zip-bytes"
    assert opened == [downloaded.asset_local_path]
    assert state.is_downloading is False


def test_download_of_missing_record_is_reported(build_catalog):
    async def scenario():
        catalog = build_catalog()
        added = await catalog.add_item("Photo1")
        await catalog.store.delete(added.record_ref)
        result = await catalog.download_item(added.record_ref)
        return catalog.state, result

    state, result = asyncio.run(scenario())
    assert result is None
    assert state.error.error_type == "RecordNotFoundError"
    assert state.is_downloading is False


def test_listener_errors_do_not_break_catalog(build_catalog):
    async def scenario():
        catalog = build_catalog()

        def broken(state):
            raise RuntimeError("listener failure")

        catalog.subscribe(broken)
        return await catalog.add_item("Photo1")

    assert asyncio.run(scenario()).name == "Photo1"


def test_unsubscribe_stops_notifications(build_catalog):
    seen = []

    async def scenario():
        catalog = build_catalog()
        unsubscribe = catalog.subscribe(seen.append)
        catalog.set_text("a")
        unsubscribe()
        catalog.set_text("b")

    asyncio.run(scenario())
    assert [state.text for state in seen] == ["a"]


def _staged_files(documents_dir):
    return sorted(path.name for path in documents_dir.glob("archive-*"))


def test_staged_payloads_are_removed(build_catalog, documents_dir, data_dir):
    async def scenario():
        catalog = build_catalog()
        for name in ("a", "b", "c"):
            await catalog.add_item(name)
        after_add = _staged_files(documents_dir)
        stored = [item.asset_local_path for item in catalog.items]
        for item in list(catalog.items):
            await catalog.delete_item(item.record_ref)
        return after_add, stored

    after_add, stored = asyncio.run(scenario())
    assert after_add == []
    assert all(path.is_relative_to(data_dir) for path in stored)
    assert _staged_files(documents_dir) == []


def test_failed_create_removes_staged_payload(build_catalog, documents_dir):
    async def scenario():
        catalog = build_catalog(database_cls=FailingSaveDatabase)
        return await catalog.add_item("Photo1")

    assert asyncio.run(scenario()) is None
    assert _staged_files(documents_dir) == []


def test_item_created_during_reload_stays_visible(build_catalog):
    async def scenario():
        catalog = build_catalog(database_cls=SnapshotFirstDatabase)
        database = catalog.store.database
        load = asyncio.create_task(catalog.load_all())
        await database.snapshot_taken.wait()
        added = await catalog.add_item("Photo1")
        database.release_query.set()
        await load
        after_reload = catalog.items
        await catalog.load_all()
        return added, after_reload, catalog.items

    added, after_reload, after_second_reload = asyncio.run(scenario())
    assert [item.name for item in after_reload] == ["Photo1"]
    assert after_reload[0].pending is False
    assert after_reload[0].record_ref == added.record_ref
    assert [item.name for item in after_second_reload] == ["Photo1"]


def test_pending_item_survives_reload(build_catalog):
    async def scenario():
        catalog = build_catalog(database_cls=HeldSaveDatabase)
        database = catalog.store.database
        add = asyncio.create_task(catalog.add_item("Photo1"))
        await database.save_started.wait()
        await catalog.load_all()
        during = catalog.items
        database.release_save.set()
        await add
        await catalog.load_all()
        return during, catalog.items

    during, after = asyncio.run(scenario())
    assert [(item.name, item.pending) for item in during] == [("Photo1", True)]
    assert [(item.name, item.pending) for item in after] == [("Photo1", False)]
