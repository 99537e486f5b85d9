"""
Tests for snapshot storage backends and optimistic versioning
"""

import tempfile

import pytest

from bankpro.config import BankproConfig
from bankpro.errors import StaleSnapshotError, StorageBusy
from bankpro.storage import (
    InMemorySnapshotStorage, JSONFileSnapshotStorage, SQLiteSnapshotStorage,
    StoredSnapshot, create_storage
)


snapshot = {
    "users": [{"id": 1, "username": "sharmila", "password": "password123", "fullName": "Sharmila R"}],
    "accounts": [],
    "cards": [],
    "transactions": [],
    "nextId": {"user": 2, "account": 1, "card": 1, "tx": 1},
    "session": {"userId": None},
}


@pytest.fixture(params=["memory", "json", "sqlite"])
def storage(request, tmp_path):
    """Each backend under the same contract"""
    if request.param == "memory":
        backend = InMemorySnapshotStorage()
    elif request.param == "json":
        backend = JSONFileSnapshotStorage(tmp_path / "snapshots")
    else:
        backend = SQLiteSnapshotStorage(tmp_path / "bank.db")
    yield backend
    backend.close()


class TestSnapshotStorage:
    """Behaviour shared by all backends"""

    def test_read_missing_key(self, storage):
        assert storage.read("bankpro_v1") is None

    def test_write_then_read(self, storage):
        version = storage.write("bankpro_v1", snapshot)

        stored = storage.read("bankpro_v1")
        assert version == 1
        assert stored == StoredSnapshot(snapshot, 1)

    def test_write_replaces_whole_snapshot(self, storage):
        storage.write("bankpro_v1", snapshot)
        storage.write("bankpro_v1", {"users": []})

        stored = storage.read("bankpro_v1")
        assert stored.data == {"users": []}
        assert stored.version == 2

    def test_read_returns_copy(self, storage):
        storage.write("bankpro_v1", snapshot)

        stored = storage.read("bankpro_v1")
        stored.data["users"].clear()

        assert len(storage.read("bankpro_v1").data["users"]) == 1

    def test_expected_version_match(self, storage):
        assert storage.write("bankpro_v1", snapshot, expected_version=0) == 1
        assert storage.write("bankpro_v1", snapshot, expected_version=1) == 2

    def test_stale_write_rejected(self, storage):
        storage.write("bankpro_v1", snapshot)
        storage.write("bankpro_v1", snapshot)

        with pytest.raises(StaleSnapshotError):
            storage.write("bankpro_v1", {"users": []}, expected_version=1)

        # Rejected write leaves the stored snapshot alone
        stored = storage.read("bankpro_v1")
        assert stored.data == snapshot
        assert stored.version == 2

    def test_keys_are_independent(self, storage):
        storage.write("a", {"n": 1})
        storage.write("b", {"n": 2})

        assert storage.read("a").data == {"n": 1}
        assert storage.read("b").data == {"n": 2}

    def test_delete(self, storage):
        storage.write("bankpro_v1", snapshot)

        assert storage.delete("bankpro_v1")
        assert storage.read("bankpro_v1") is None
        assert not storage.delete("bankpro_v1")


class TestFileBackends:
    """Persistence across handles"""

    def test_json_file_survives_reopen(self, tmp_path):
        JSONFileSnapshotStorage(tmp_path).write("bankpro_v1", snapshot)

        reopened = JSONFileSnapshotStorage(tmp_path)
        assert reopened.read("bankpro_v1").data == snapshot
        assert (tmp_path / "bankpro_v1.json").exists()
        assert not list(tmp_path.glob("*.tmp"))

    def test_json_rejects_path_like_keys(self, tmp_path):
        storage = JSONFileSnapshotStorage(tmp_path)
        with pytest.raises(ValueError):
            storage.read("../escape")

    def test_json_writer_holds_lock_until_rename(self, tmp_path, monkeypatch):
        first = JSONFileSnapshotStorage(tmp_path)
        second = JSONFileSnapshotStorage(tmp_path, lock_timeout=0.05)
        first.write("bankpro_v1", snapshot)

        competing = dict(snapshot, users=[])
        real_mkstemp = tempfile.mkstemp
        interleaved = []

        def mkstemp_with_competing_write(*args, **kwargs):
            # first has passed its version check; second tries the same version
            if not interleaved:
                interleaved.append(True)
                with pytest.raises(StorageBusy):
                    second.write("bankpro_v1", competing, expected_version=1)
            return real_mkstemp(*args, **kwargs)

        monkeypatch.setattr(tempfile, "mkstemp", mkstemp_with_competing_write)

        assert first.write("bankpro_v1", snapshot, expected_version=1) == 2
        assert interleaved
        assert second.read("bankpro_v1") == StoredSnapshot(snapshot, 2)

        with pytest.raises(StaleSnapshotError):
            second.write("bankpro_v1", competing, expected_version=1)
        assert second.write("bankpro_v1", competing, expected_version=2) == 3

    def test_json_lock_released_after_failed_write(self, tmp_path):
        storage = JSONFileSnapshotStorage(tmp_path, lock_timeout=0.05)
        storage.write("bankpro_v1", snapshot)

        with pytest.raises(StaleSnapshotError):
            storage.write("bankpro_v1", snapshot, expected_version=5)

        other = JSONFileSnapshotStorage(tmp_path, lock_timeout=0.05)
        assert other.write("bankpro_v1", snapshot, expected_version=1) == 2

    def test_sqlite_survives_reopen(self, tmp_path):
        db_path = tmp_path / "bank.db"
        first = SQLiteSnapshotStorage(db_path)
        first.write("bankpro_v1", snapshot)
        first.close()

        second = SQLiteSnapshotStorage(db_path)
        stored = second.read("bankpro_v1")
        second.close()

        assert stored == StoredSnapshot(snapshot, 1)

    def test_sqlite_two_handles_detect_stale_write(self, tmp_path):
        db_path = tmp_path / "bank.db"
        first = SQLiteSnapshotStorage(db_path)
        second = SQLiteSnapshotStorage(db_path)

        first.write("bankpro_v1", snapshot)
        seen = second.read("bankpro_v1").version
        first.write("bankpro_v1", snapshot)

        with pytest.raises(StaleSnapshotError):
            second.write("bankpro_v1", snapshot, expected_version=seen)

        first.close()
        second.close()


class TestCreateStorage:
    """Backend selection from configuration"""

    def test_memory(self):
        config = BankproConfig(storage_backend="memory")
        assert isinstance(create_storage(config), InMemorySnapshotStorage)

    def test_json(self, tmp_path):
        config = BankproConfig(storage_backend="json", storage_path=str(tmp_path / "data"))
        storage = create_storage(config)
        assert isinstance(storage, JSONFileSnapshotStorage)
        assert (tmp_path / "data").is_dir()

    def test_sqlite(self, tmp_path):
        config = BankproConfig(storage_backend="SQLite", storage_path=str(tmp_path / "bank.db"))
        storage = create_storage(config)
        assert isinstance(storage, SQLiteSnapshotStorage)
        storage.close()

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unsupported storage backend"):
            create_storage(BankproConfig(storage_backend="redis"))
