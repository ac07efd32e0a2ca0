"""
Key-Value Backends Module.

The stores persist JSON text under string keys through a small injected
interface, so the same store code runs against:
    - MemoryStore: ephemeral, per-session data and tests
    - SQLiteStore: persistent local storage in a single SQLite table

Backends raise StorageError; the stores built on top of them convert
every failure into a boolean or empty result.

Author: Invoice Composer Team
"""

import sqlite3
from abc import ABC, abstractmethod
from contextlib import closing
from pathlib import Path
from typing import Dict, List, Optional, Union

from config import get_config
from invoice_composer.utils.exceptions import StorageError
from invoice_composer.utils.helpers import ensure_directory
from invoice_composer.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class KeyValueStore(ABC):
    """Minimal string key-value storage interface."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; removing an absent key is not an error."""

    @abstractmethod
    def keys(self) -> List[str]:
        """All stored keys."""


class MemoryStore(KeyValueStore):
    """
    In-process dictionary store.

    Attributes:
        quota_bytes: Optional limit on the total size of stored values;
                     exceeding it raises StorageError like a full disk.

    Example:
        >>> store = MemoryStore(quota_bytes=1024)
        >>> store.set("greeting", "hello")
        >>> store.get("greeting")
        'hello'
    """

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(v.encode('utf-8')) for k, v in self._data.items() if k != key)
            if used + len(value.encode('utf-8')) > self.quota_bytes:
                raise StorageError("set", f"Quota of {self.quota_bytes} bytes exceeded for key '{key}'")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)


class SQLiteStore(KeyValueStore):
    """
    Persistent store backed by one SQLite key/value table.

    Attributes:
        db_path: Path to the database file.
        table_name: Name of the key/value table.

    Example:
        >>> store = SQLiteStore("data/invoice_composer.db")
        >>> store.set("invoice_composer_company_profile", "{}")
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None, table_name: Optional[str] = None) -> None:
        """
        Initialize the store and create its table if needed.

        Args:
            db_path: Database file. If None, uses ``paths.data_dir`` and
                     ``storage.database.name`` from configuration.
            table_name: Table name. If None, uses configuration.

        Raises:
            StorageError: If the database cannot be created.
        """
        if db_path:
            self.db_path = Path(db_path)
        else:
            data_dir = Path(get_config("paths.data_dir", "data"))
            self.db_path = data_dir / get_config("storage.database.name", "invoice_composer.db")

        self.table_name = table_name or get_config("storage.database.table_name", "kv_store")

        ensure_directory(self.db_path.parent)
        self._create_table()

        logger.info(f"SQLiteStore initialized (db: {self.db_path}, table: {self.table_name})")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _create_table(self) -> None:
        create_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.table_name} (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
        """
        self._execute("create table", create_sql)
        logger.debug("Key/value table created/verified")

    def _execute(self, operation: str, sql: str, params: tuple = ()) -> List[tuple]:
        try:
            with closing(self._connect()) as conn:
                with conn:
                    rows = conn.execute(sql, params).fetchall()
            return rows
        except sqlite3.Error as e:
            raise StorageError(operation, str(e))

    def get(self, key: str) -> Optional[str]:
        rows = self._execute(
            "get",
            f"SELECT value FROM {self.table_name} WHERE key = ?",
            (key,)
        )
        return rows[0][0] if rows else None

    def set(self, key: str, value: str) -> None:
        self._execute(
            "set",
            f"""
            INSERT INTO {self.table_name} (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, value)
        )
        logger.debug(f"Stored {len(value)} chars under '{key}'")

    def delete(self, key: str) -> None:
        self._execute("delete", f"DELETE FROM {self.table_name} WHERE key = ?", (key,))

    def keys(self) -> List[str]:
        rows = self._execute("keys", f"SELECT key FROM {self.table_name} ORDER BY key")
        return [row[0] for row in rows]
