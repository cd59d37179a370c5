"""
Persistent key/field backing stores.
Records survive process restart when a VectorRecordStore is given one of these.
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Union

from .db import get_db, init_db
from .errors import BackingStoreError

FieldValue = Union[bytes, str, int, float]


class IBackingStore(ABC):
    """Abstract interface for hash-field style key/value storage."""

    @abstractmethod
    def set_fields(self, key: str, fields: Dict[str, FieldValue]) -> None:
        """Set all given fields on a key atomically."""
        pass

    @abstractmethod
    def get_fields(self, key: str) -> Dict[str, FieldValue]:
        """Get every field stored under a key. Empty dict if the key is absent."""
        pass

    @abstractmethod
    def list_keys(self, prefix: str = "") -> List[str]:
        """List keys starting with prefix, sorted."""
        pass

    @abstractmethod
    def delete_key(self, key: str) -> None:
        """Delete a key and all of its fields."""
        pass


class InMemoryBackingStore(IBackingStore):
    """Dict-backed store, mostly for tests."""

    def __init__(self):
        self._data = {}  # key -> {field: value}
        self._lock = threading.Lock()

    def set_fields(self, key: str, fields: Dict[str, FieldValue]) -> None:
        with self._lock:
            self._data.setdefault(key, {}).update(fields)

    def get_fields(self, key: str) -> Dict[str, FieldValue]:
        with self._lock:
            return dict(self._data.get(key, {}))

    def list_keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))

    def delete_key(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SQLiteBackingStore(IBackingStore):
    """SQLite-backed store with one row per (key, field)."""

    def __init__(self, db_path: str):
        """
        Initialize the SQLite backing store.

        Args:
            db_path: Path of the database file, created if missing
        """
        self.db_path = db_path
        try:
            init_db(db_path)
        except (sqlite3.Error, OSError) as e:
            raise BackingStoreError(f"Failed to initialize database at {db_path}: {e}") from e

    def set_fields(self, key: str, fields: Dict[str, FieldValue]) -> None:
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.executemany(
                    '''
                    INSERT INTO fields (key, field, value, updated_at)
                    VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key, field) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    ''',
                    [(key, name, value) for name, value in fields.items()]
                )
                conn.commit()
        except sqlite3.Error as e:
            raise BackingStoreError(f"Failed to write fields for key '{key}': {e}", key=key) from e

    def get_fields(self, key: str) -> Dict[str, FieldValue]:
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT field, value FROM fields WHERE key = ?", (key,))
                return {field: value for field, value in cursor.fetchall()}
        except sqlite3.Error as e:
            raise BackingStoreError(f"Failed to read fields for key '{key}': {e}", key=key) from e

    def list_keys(self, prefix: str = "") -> List[str]:
        # substr comparison so LIKE wildcards in the prefix stay literal
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT DISTINCT key FROM fields WHERE substr(key, 1, ?) = ? ORDER BY key",
                    (len(prefix), prefix)
                )
                return [row[0] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise BackingStoreError(f"Failed to list keys with prefix '{prefix}': {e}") from e

    def delete_key(self, key: str) -> None:
        try:
            with get_db(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM fields WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            raise BackingStoreError(f"Failed to delete key '{key}': {e}", key=key) from e
