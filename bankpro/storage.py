"""
Storage Backend Module

Provides an abstract snapshot storage interface and implementations for
in-memory (testing), JSON files and SQLite. A backend stores whole snapshot
documents under a key and stamps each write with an increasing version so
callers can detect that someone else saved in between.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union
import json
import os
import re
import sqlite3
import tempfile
import threading

from filelock import FileLock, Timeout

from .config import BankproConfig
from .errors import StaleSnapshotError, StorageBusy


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass(frozen=True)
class StoredSnapshot:
    """A snapshot document and the version it was written at"""
    data: Dict[str, Any]
    version: int


class SnapshotStorage(ABC):
    """Abstract interface for snapshot storage backends"""

    @abstractmethod
    def read(self, key: str) -> Optional[StoredSnapshot]:
        """Read the snapshot stored under key, or None"""
        pass

    @abstractmethod
    def write(self, key: str, data: Dict[str, Any],
              expected_version: Optional[int] = None) -> int:
        """
        Replace the snapshot under key and return its new version.

        When expected_version is given, the write is rejected with
        StaleSnapshotError unless the stored version still equals it
        (0 meaning "nothing stored yet").
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete the snapshot under key"""
        pass

    def close(self) -> None:
        """Release backend resources (default no-op)"""
        pass

    @staticmethod
    def _check_version(key: str, current: int, expected: Optional[int]) -> None:
        if expected is not None and current != expected:
            raise StaleSnapshotError(
                f"Snapshot {key!r} is at version {current}, expected {expected}"
            )


class InMemorySnapshotStorage(SnapshotStorage):
    """In-memory storage implementation for testing"""

    def __init__(self):
        self._data: Dict[str, StoredSnapshot] = {}
        self._lock = threading.RLock()

    def read(self, key: str) -> Optional[StoredSnapshot]:
        with self._lock:
            stored = self._data.get(key)
            if stored is None:
                return None
            # Deep copy to prevent external mutation
            return StoredSnapshot(json.loads(json.dumps(stored.data)), stored.version)

    def write(self, key: str, data: Dict[str, Any],
              expected_version: Optional[int] = None) -> int:
        with self._lock:
            stored = self._data.get(key)
            current = stored.version if stored else 0
            self._check_version(key, current, expected_version)
            version = current + 1
            self._data[key] = StoredSnapshot(json.loads(json.dumps(data, default=str)), version)
            return version

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None


class JSONFileSnapshotStorage(SnapshotStorage):
    """
    One JSON file per key inside a directory.

    Files are written to a temporary sibling and renamed into place, so a
    reader never sees a half-written snapshot. Writers hold a per-key lock
    file from the version check through the rename, which serializes
    handles in other threads and processes sharing the directory.
    """

    def __init__(self, directory: Union[str, Path], lock_timeout: float = 10.0):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.lock_timeout = lock_timeout
        self._lock = threading.RLock()

    @contextmanager
    def _file_lock(self, key: str) -> Iterator[None]:
        lock = FileLock(str(self.directory / f".{key}.lock"), timeout=self.lock_timeout)
        try:
            lock.acquire()
        except Timeout:
            raise StorageBusy(f"Snapshot {key!r} is locked by another writer") from None
        try:
            yield
        finally:
            lock.release()

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid snapshot key: {key!r}")
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[StoredSnapshot]:
        with self._lock:
            path = self._path(key)
            if not path.exists():
                return None
            with path.open("r", encoding="utf-8") as fh:
                envelope = json.load(fh)
            return StoredSnapshot(envelope["data"], int(envelope["version"]))

    def write(self, key: str, data: Dict[str, Any],
              expected_version: Optional[int] = None) -> int:
        path = self._path(key)
        with self._lock, self._file_lock(key):
            current = self.read(key)
            current_version = current.version if current else 0
            self._check_version(key, current_version, expected_version)

            version = current_version + 1
            envelope = {
                "version": version,
                "updated_at": datetime.now(timezone.utc).isoformat(),
                "data": data,
            }
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(envelope, fh, ensure_ascii=False, indent=2, default=str)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
            return version

    def delete(self, key: str) -> bool:
        path = self._path(key)
        with self._lock, self._file_lock(key):
            if path.exists():
                path.unlink()
                return True
            return False


class SQLiteSnapshotStorage(SnapshotStorage):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        # Autocommit mode; write() opens its own transaction explicitly
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()

        with self._lock:
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    version INTEGER NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def read(self, key: str) -> Optional[StoredSnapshot]:
        with self._lock:
            cursor = self._connection.execute(
                "SELECT data, version FROM snapshots WHERE key = ?", (key,)
            )
            row = cursor.fetchone()
            if row:
                return StoredSnapshot(json.loads(row['data']), row['version'])
            return None

    def write(self, key: str, data: Dict[str, Any],
              expected_version: Optional[int] = None) -> int:
        with self._lock:
            now = datetime.now(timezone.utc).isoformat()
            data_json = json.dumps(data, default=str)
            try:
                # BEGIN IMMEDIATE takes the write lock before the version check
                self._connection.execute("BEGIN IMMEDIATE")
                row = self._connection.execute(
                    "SELECT version FROM snapshots WHERE key = ?", (key,)
                ).fetchone()
                current = row['version'] if row else 0
                self._check_version(key, current, expected_version)
                version = current + 1
                self._connection.execute("""
                    INSERT OR REPLACE INTO snapshots (key, data, version, updated_at)
                    VALUES (?, ?, ?, ?)
                """, (key, data_json, version, now))
                self._connection.commit()
            except Exception:
                self._connection.rollback()
                raise
            return version

    def delete(self, key: str) -> bool:
        with self._lock:
            cursor = self._connection.execute("DELETE FROM snapshots WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(config: BankproConfig) -> SnapshotStorage:
    """Build the storage backend named by config.storage_backend"""
    backend = config.storage_backend.lower()
    if backend == "memory":
        return InMemorySnapshotStorage()
    if backend == "json":
        return JSONFileSnapshotStorage(config.storage_path)
    if backend == "sqlite":
        return SQLiteSnapshotStorage(config.storage_path)
    raise ValueError(f"Unsupported storage backend: {config.storage_backend}")
