"""
Storage Backend Module

Provides the abstract record-store interface used by the engine and
implementations for in-memory (testing) and SQLite (persistence). All monetary
values are stored as Decimal strings.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Union
from decimal import Decimal
from datetime import datetime, date, timezone
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager

from .exceptions import DuplicateRecordError, StorageError


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    id: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
            elif isinstance(value, Decimal):
                result[key] = str(value)
        return result


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value[:10])


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    def __init__(self):
        self._lock = threading.RLock()
        self._atomic_depth = 0

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save (insert or replace) a record"""

    @abstractmethod
    def insert(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Insert a new record; raises DuplicateRecordError if the id exists"""

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table in insertion order"""

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records whose fields equal every filter value"""
        return [
            record for record in self.load_all(table)
            if all(key in record and record[key] == value for key, value in filters.items())
        ]

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""

    @contextmanager
    def atomic(self):
        """
        Context manager for atomic operations.

        Holds the storage lock for the whole block so a check-then-write inside
        it cannot interleave with another thread. Nested blocks join the
        outermost transaction.
        """
        with self._lock:
            outermost = self._atomic_depth == 0
            if outermost:
                self.begin_transaction()
            self._atomic_depth += 1
            try:
                yield
            except Exception:
                self._atomic_depth -= 1
                if outermost:
                    self.rollback()
                raise
            self._atomic_depth -= 1
            if outermost:
                self.commit()


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self):
        super().__init__()
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._snapshot: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None

    @staticmethod
    def _copy(record: Any) -> Any:
        # Deep copy to prevent external mutation
        return json.loads(json.dumps(record, default=str))

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(table, {})

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._table(table)[record_id] = self._copy(data)

    def insert(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            rows = self._table(table)
            if record_id in rows:
                raise DuplicateRecordError(table, record_id)
            rows[record_id] = self._copy(data)

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._table(table).get(record_id)
            return self._copy(record) if record is not None else None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [self._copy(record) for record in self._table(table).values()]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            return self._table(table).pop(record_id, None) is not None

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            return record_id in self._table(table)

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._table(table))

    def begin_transaction(self) -> None:
        self._snapshot = self._copy(self._data)

    def commit(self) -> None:
        self._snapshot = None

    def rollback(self) -> None:
        if self._snapshot is not None:
            self._data = self._snapshot
            self._snapshot = None

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        super().__init__()
        self.db_path = str(db_path)
        # DEFERRED isolation so commits are under our control
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
        self._connection.row_factory = sqlite3.Row
        self._in_transaction = False
        self._tables: set = set()

        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
                self._connection.commit()

    def _maybe_commit(self) -> None:
        if not self._in_transaction:
            self._connection.commit()

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._tables:
            return
        self._connection.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._connection.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_created_at
            ON {table}(created_at)
        """)
        self._maybe_commit()
        self._tables.add(table)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_table(table)
            now = utc_now().isoformat()
            self._connection.execute(f"""
                INSERT OR REPLACE INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?,
                    COALESCE((SELECT created_at FROM {table} WHERE id = ?), ?),
                    ?)
            """, (record_id, json.dumps(data, default=str), record_id, now, now))
            self._maybe_commit()

    def insert(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_table(table)
            now = utc_now().isoformat()
            try:
                self._connection.execute(f"""
                    INSERT INTO {table} (id, data, created_at, updated_at)
                    VALUES (?, ?, ?, ?)
                """, (record_id, json.dumps(data, default=str), now, now))
            except sqlite3.IntegrityError as e:
                raise DuplicateRecordError(table, record_id) from e
            self._maybe_commit()

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            row = self._connection.execute(
                f"SELECT data FROM {table} WHERE id = ?", (record_id,)
            ).fetchone()
            return json.loads(row['data']) if row else None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(
                f"SELECT data FROM {table} ORDER BY created_at, rowid"
            )
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(
                f"DELETE FROM {table} WHERE id = ?", (record_id,)
            )
            self._maybe_commit()
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(
                f"SELECT 1 FROM {table} WHERE id = ? LIMIT 1", (record_id,)
            )
            return cursor.fetchone() is not None

    def count(self, table: str) -> int:
        with self._lock:
            self._ensure_table(table)
            cursor = self._connection.execute(f"SELECT COUNT(*) as count FROM {table}")
            return cursor.fetchone()['count']

    def begin_transaction(self) -> None:
        # sqlite3 opens the transaction implicitly on the first write
        self._in_transaction = True

    def commit(self) -> None:
        if self._in_transaction:
            self._connection.commit()
            self._in_transaction = False

    def rollback(self) -> None:
        if self._in_transaction:
            self._connection.rollback()
            self._in_transaction = False
            # Tables created inside the rolled back transaction are gone too
            self._tables.clear()

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str) -> StorageInterface:
    """
    Build a storage backend from a URL.

    Supported: "memory://", "sqlite:///path/to.db", "sqlite:///:memory:".
    """
    if database_url.startswith("memory://"):
        return InMemoryStorage()
    if database_url.startswith("sqlite:///"):
        return SQLiteStorage(database_url[len("sqlite:///"):] or ":memory:")
    raise StorageError(f"Unsupported database URL: {database_url}")
