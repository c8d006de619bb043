import json
import os
import stat
from pathlib import Path

import pytest

from finance_dashboard.errors import StorageError
from finance_dashboard.snapshot import SNAPSHOT_FILENAME, Snapshot, SnapshotStore


def test_missing_file_loads_empty(store: SnapshotStore) -> None:
    snap = store.load()
    assert snap == Snapshot()
    assert snap.to_dict() == {"lastUpdated": None, "transactions": [], "discoveredAccounts": []}


@pytest.mark.parametrize("content", ["{not json", "[]", '{"transactions": 5}'])
def test_corrupt_file_loads_empty(store: SnapshotStore, content: str) -> None:
    store.path.parent.mkdir(parents=True)
    store.path.write_text(content, encoding="utf-8")
    assert store.load() == Snapshot()


def test_save_is_pretty_printed_and_round_trips(store: SnapshotStore) -> None:
    snap = Snapshot(
        last_updated="2025-10-19T10:00:00+00:00",
        transactions=[{"transactionId": "t1", "description": "Café"}],
        discovered_accounts=["a1"],
    )
    store.save(snap)

    text = store.path.read_text(encoding="utf-8")
    assert text.startswith('{\n  "lastUpdated"')
    assert "Café" in text
    assert store.load() == snap


def test_save_replaces_wholesale_and_leaves_no_temp_files(store: SnapshotStore) -> None:
    store.save(Snapshot(transactions=[{"transactionId": "old"}]))
    store.save(Snapshot(transactions=[{"transactionId": "new"}]))

    data = json.loads(store.path.read_text(encoding="utf-8"))
    assert data["transactions"] == [{"transactionId": "new"}]
    assert [p.name for p in store.path.parent.iterdir()] == [SNAPSHOT_FILENAME]


def test_unwritable_location_raises_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    store = SnapshotStore(blocker / SNAPSHOT_FILENAME)

    with pytest.raises(StorageError):
        store.save(Snapshot())


def test_namespaced_store_path(tmp_path: Path) -> None:
    store = SnapshotStore.in_directory(tmp_path, "../evil name")
    assert store.path == tmp_path / "accounts" / "evil_name" / SNAPSHOT_FILENAME


@pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
def test_new_snapshot_gets_umask_default_mode(store: SnapshotStore) -> None:
    old_umask = os.umask(0o022)
    try:
        store.save(Snapshot())
    finally:
        os.umask(old_umask)
    assert stat.S_IMODE(store.path.stat().st_mode) == 0o644


@pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
def test_save_keeps_existing_file_mode(store: SnapshotStore) -> None:
    store.save(Snapshot())
    store.path.chmod(0o640)
    store.save(Snapshot(transactions=[{"transactionId": "t1"}]))
    assert stat.S_IMODE(store.path.stat().st_mode) == 0o640
