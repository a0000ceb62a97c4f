import asyncio

import pytest

from conftest import make_entry, write_raw
from rankwatch.cache_manager import CacheManager, resolve_category
from rankwatch.errors import CommitPartial, StorageUnavailable
from rankwatch.latest_cache import LatestCache
from rankwatch.snapshot_store import SnapshotStore


def test_alias_resolution():
    assert resolve_category("seo") == "marketing/seo"
    assert resolve_category("marketing/seo") == "marketing/seo"
    assert resolve_category("all") == "all"
    assert resolve_category("legal") == "legal"


def test_latest_cache_get_and_replace():
    cache = LatestCache()
    assert cache.get("all") == []
    cache.replace({"all": [make_entry(1, "X")]})
    assert [e["name"] for e in cache.get("all")] == ["X"]

    # callers get copies, not the cached rows
    cache.get("all")[0]["name"] = "mutated"
    assert cache.get("all")[0]["name"] == "X"


def test_recover_loads_newest_file(store):
    for i, name in enumerate(["F1", "F2", "F3"], start=1):
        write_raw(store.root, f"rankings_2024010{i}_000000.json", {"all": [make_entry(1, name)]})

    manager = CacheManager(store)
    asyncio.run(manager.recover())

    assert [e["name"] for e in manager.query("all")] == ["F3"]
    assert manager.current_filename == "rankings_20240103_000000.json"


def test_recover_fresh_directory_stays_empty(store):
    manager = CacheManager(store)
    asyncio.run(manager.recover())

    assert store.root.is_dir()
    assert manager.cache.snapshot() == {}
    assert manager.current_filename is None


def test_recover_existing_empty_directory(store):
    store.root.mkdir(parents=True)
    manager = CacheManager(store)
    asyncio.run(manager.recover())
    assert len(manager.cache) == 0


def test_recover_corrupt_latest_does_not_raise(store):
    write_raw(store.root, "rankings_20240101_000000.json", {"all": [make_entry(1, "old")]})
    write_raw(store.root, "rankings_20240102_000000.json", "")

    manager = CacheManager(store)
    asyncio.run(manager.recover())

    assert manager.query("all") == []
    assert manager.current_filename is None


def test_recover_unusable_directory_does_not_raise(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x")
    manager = CacheManager(SnapshotStore(blocker / "data"))
    asyncio.run(manager.recover())
    assert manager.cache.snapshot() == {}


def test_commit_replaces_instead_of_merging(store):
    manager = CacheManager(store)
    asyncio.run(manager.recover())

    asyncio.run(manager.commit({"all": [make_entry(1, "A")], "legal": [make_entry(1, "L")]}))
    asyncio.run(manager.commit({"all": [make_entry(1, "B")]}))

    assert manager.query("legal") == []
    assert [e["name"] for e in manager.query("all")] == ["B"]


def test_commit_persists_and_tracks_filename(store, sample_snapshot):
    manager = CacheManager(store)
    name = asyncio.run(manager.commit(sample_snapshot))

    assert manager.current_filename == name
    assert store.list_snapshot_files() == [name]
    assert store.read_snapshot(name) == sample_snapshot
    assert manager.query("seo") == sample_snapshot["marketing/seo"]


class _BrokenStore(SnapshotStore):
    def write_snapshot(self, snapshot, now=None):
        raise StorageUnavailable("disk full")


def test_commit_write_failure_keeps_new_data_in_memory(tmp_path):
    manager = CacheManager(_BrokenStore(tmp_path / "data"))

    with pytest.raises(CommitPartial) as exc:
        asyncio.run(manager.commit({"all": [make_entry(1, "fresh")]}))

    assert exc.value.filename.startswith("rankings_")
    assert isinstance(exc.value.cause, StorageUnavailable)
    assert [e["name"] for e in manager.query("all")] == ["fresh"]
    assert manager.current_filename is None


class _ObservingStore(SnapshotStore):
    """Reads the cache while the write is in flight."""

    def __init__(self, root, manager_ref):
        super().__init__(root)
        self.manager_ref = manager_ref
        self.seen = None

    def write_snapshot(self, snapshot, now=None):
        manager = self.manager_ref[0]
        self.seen = {cat: manager.query(cat) for cat in ("all", "legal", "finance")}
        return super().write_snapshot(snapshot, now)


def test_readers_never_see_a_mixed_snapshot(tmp_path):
    ref = []
    store = _ObservingStore(tmp_path / "data", ref)
    manager = CacheManager(store)
    ref.append(manager)

    old = {"all": [make_entry(1, "old")], "legal": [make_entry(1, "old-legal")]}
    new = {"all": [make_entry(1, "new")], "finance": [make_entry(1, "new-fin")]}
    manager.cache.replace(old)

    asyncio.run(manager.commit(new))

    assert store.seen == {
        "all": new["all"],
        "legal": [],
        "finance": new["finance"],
    }


def test_recover_non_utf8_latest_does_not_raise(store):
    write_raw(store.root, "rankings_20240101_000000.json", {"all": [make_entry(1, "old")]})
    write_raw(store.root, "rankings_20240102_000000.json", b"\xff\xfe\x00garbage")

    manager = CacheManager(store)
    asyncio.run(manager.recover())

    assert manager.cache.snapshot() == {}
    assert manager.current_filename is None


def test_recovered_cache_equals_file_content(store):
    content = {"all": [{"rank": "1", "name": "X", "provider": "acme", "tokens": -5}]}
    write_raw(store.root, "rankings_20240101_000000.json", content)

    manager = CacheManager(store)
    asyncio.run(manager.recover())

    assert manager.cache.snapshot() == content
    assert manager.query("all") == content["all"]


def test_commit_unserializable_snapshot_is_partial(store):
    manager = CacheManager(store)

    with pytest.raises(CommitPartial) as exc:
        asyncio.run(manager.commit({"all": [{"rank": 1, "when": object()}]}))

    assert exc.value.filename.startswith("rankings_")
    assert manager.query("all")[0]["rank"] == 1
    assert manager.current_filename is None
