"""
Storage Backend Module

Provides an abstract storage interface and implementations for in-memory
(testing), SQLite (single host) and PostgreSQL (shared database). Records are
JSON documents keyed by table and id; all monetary values stored as Decimal
strings.

Every ledger operation runs inside ``atomic()``, which holds the storage lock
for the whole unit of work and wraps it in a backend transaction. Waiting for
the lock is bounded; expiry surfaces as a retryable TransientError.
"""

from abc import ABC, abstractmethod
from typing import ClassVar, Dict, List, Optional, Any, Tuple, Union
from decimal import Decimal
from datetime import datetime, timezone
import sqlite3
import json
import threading
from dataclasses import dataclass, asdict
from pathlib import Path
from contextlib import contextmanager

from .errors import TransientError
from .logging_config import get_logger

logger = get_logger("monopoly_bank.storage")


@dataclass
class StorageRecord:
    """Base class for all stored records"""
    created_at: datetime
    updated_at: datetime

    # Fields persisted as strings and restored as Decimal
    decimal_fields: ClassVar[Tuple[str, ...]] = ()

    @property
    def record_id(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        result = asdict(self)
        result['created_at'] = self.created_at.isoformat()
        result['updated_at'] = self.updated_at.isoformat()
        for key, value in result.items():
            if isinstance(value, Decimal):
                result[key] = str(value)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StorageRecord':
        """Create instance from dictionary"""
        data = dict(data)
        if 'created_at' in data and isinstance(data['created_at'], str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        if 'updated_at' in data and isinstance(data['updated_at'], str):
            data['updated_at'] = datetime.fromisoformat(data['updated_at'])
        for key in cls.decimal_fields:
            if data.get(key) is not None:
                data[key] = Decimal(str(data[key]))
        return cls(**data)


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    def __init__(self, lock_timeout: float = 5.0):
        self.lock_timeout = lock_timeout
        self._lock = threading.RLock()
        self._depth = 0

    @abstractmethod
    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record to storage"""
        pass

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record from storage"""
        pass

    @abstractmethod
    def load_all(self, table: str) -> List[Dict[str, Any]]:
        """Load all records from a table"""
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Delete a record from storage"""
        pass

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        """Check if a record exists"""
        pass

    @abstractmethod
    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters"""
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        """Count records in table"""
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        """Clear all records from a table"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    def load_for_update(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record that is about to be modified in the current transaction"""
        return self.load(table, record_id)

    def begin_transaction(self) -> None:
        """Start a database transaction (default no-op)"""
        pass

    def commit(self) -> None:
        """Commit current transaction (default no-op)"""
        pass

    def rollback(self) -> None:
        """Rollback current transaction (default no-op)"""
        pass

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self):
        """
        Context manager for atomic operations.

        Nested blocks join the outermost one; only the outermost block
        commits or rolls back.
        """
        if not self._lock.acquire(timeout=self.lock_timeout):
            raise TransientError(
                f"Ledger is busy, timed out after {self.lock_timeout}s; please retry"
            )
        try:
            outermost = self._depth == 0
            if outermost:
                self.begin_transaction()
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outermost:
                    self.rollback()
                raise
            else:
                self._depth -= 1
                if outermost:
                    try:
                        self.commit()
                    except BaseException:
                        # A failed COMMIT leaves the backend transaction open
                        self.rollback()
                        raise
        finally:
            self._lock.release()


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self, lock_timeout: float = 5.0):
        super().__init__(lock_timeout)
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._snapshot: Optional[str] = None

    def _ensure_table(self, table: str) -> None:
        if table not in self._data:
            self._data[table] = {}

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_table(table)
            # Deep copy to prevent external mutation
            self._data[table][record_id] = json.loads(json.dumps(data, default=str))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            record = self._data[table].get(record_id)
            if record:
                return json.loads(json.dumps(record))
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            return [json.loads(json.dumps(record)) for record in self._data[table].values()]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            if record_id in self._data[table]:
                del self._data[table][record_id]
                return True
            return False

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            return record_id in self._data[table]

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            results = []
            for record in self._data[table].values():
                if all(key in record and record[key] == value for key, value in filters.items()):
                    results.append(json.loads(json.dumps(record)))
            return results

    def count(self, table: str) -> int:
        with self._lock:
            self._ensure_table(table)
            return len(self._data[table])

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._data[table] = {}

    def begin_transaction(self) -> None:
        """Snapshot every table so a failed unit of work can be undone"""
        self._snapshot = json.dumps(self._data)

    def commit(self) -> None:
        self._snapshot = None

    def rollback(self) -> None:
        if self._snapshot is not None:
            self._data = json.loads(self._snapshot)
            self._snapshot = None

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass


class SQLiteStorage(StorageInterface):
    """SQLite storage implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:", lock_timeout: float = 5.0):
        super().__init__(lock_timeout)
        self.db_path = str(db_path)
        # Autocommit mode; atomic() issues BEGIN IMMEDIATE explicitly so the
        # write lock is taken before the first read of a read-modify-write.
        self._connection = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level=None, timeout=lock_timeout
        )
        self._connection.row_factory = sqlite3.Row
        self._tables = set()

        if self.db_path != ":memory:":
            with self._lock:
                self._execute("PRAGMA journal_mode = WAL")
                self._execute("PRAGMA synchronous = NORMAL")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self._connection.execute(sql, params)
        except sqlite3.OperationalError as e:
            self._raise_if_busy(e)
            raise

    def _raise_if_busy(self, error: sqlite3.OperationalError) -> None:
        message = str(error).lower()
        if "locked" in message or "busy" in message:
            logger.warning(f"SQLite busy: {error}")
            raise TransientError("Database is busy; please retry") from error

    def _ensure_table(self, table: str) -> None:
        """Ensure table exists with proper schema"""
        if table in self._tables:
            return
        self._execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_created_at
            ON {table}(created_at)
        """)
        self._tables.add(table)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._ensure_table(table)
            now = datetime.now(timezone.utc).isoformat()
            data_json = json.dumps(data, default=str)
            self._execute(f"""
                INSERT OR REPLACE INTO {table} (id, data, created_at, updated_at)
                VALUES (?, ?,
                    COALESCE((SELECT created_at FROM {table} WHERE id = ?), ?),
                    ?)
            """, (record_id, data_json, record_id, now, now))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            row = self._execute(f"SELECT data FROM {table} WHERE id = ?", (record_id,)).fetchone()
            if row:
                return json.loads(row['data'])
            return None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock:
            self._ensure_table(table)
            cursor = self._execute(f"SELECT data FROM {table} ORDER BY created_at, rowid")
            return [json.loads(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            self._ensure_table(table)
            cursor = self._execute(f"SELECT 1 FROM {table} WHERE id = ? LIMIT 1", (record_id,))
            return cursor.fetchone() is not None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters (simple JSON key matching)"""
        return [
            record for record in self.load_all(table)
            if all(key in record and record[key] == value for key, value in filters.items())
        ]

    def count(self, table: str) -> int:
        with self._lock:
            self._ensure_table(table)
            return self._execute(f"SELECT COUNT(*) AS count FROM {table}").fetchone()['count']

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._ensure_table(table)
            self._execute(f"DELETE FROM {table}")

    def begin_transaction(self) -> None:
        self._execute("BEGIN IMMEDIATE")

    def commit(self) -> None:
        if self._connection.in_transaction:
            try:
                self._connection.commit()
            except sqlite3.OperationalError as e:
                self._raise_if_busy(e)
                raise

    def rollback(self) -> None:
        if self._connection.in_transaction:
            self._connection.rollback()
        # Tables created inside the rolled back transaction are gone again
        self._tables.clear()

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


class PostgreSQLStorage(StorageInterface):
    """PostgreSQL storage backend with row locking for read-modify-write"""

    def __init__(self, connection_string: str, lock_timeout: float = 5.0):
        super().__init__(lock_timeout)
        try:
            import psycopg2
            import psycopg2.extras
            self.psycopg2 = psycopg2
            self.extras = psycopg2.extras
        except ImportError:
            raise ImportError("psycopg2 is required for PostgreSQL storage. Install with: pip install psycopg2-binary")

        self.connection_string = connection_string
        self._connection = None
        self._tables = set()
        self._connect()

    def _connect(self) -> None:
        try:
            self._connection = self.psycopg2.connect(
                self.connection_string,
                cursor_factory=self.extras.RealDictCursor,
                connect_timeout=max(1, int(self.lock_timeout)),
                options=f"-c lock_timeout={int(self.lock_timeout * 1000)}"
            )
        except self.psycopg2.OperationalError as e:
            raise TransientError("Database connection failed; please retry") from e
        self._connection.autocommit = False

    @contextmanager
    def _cursor(self):
        if self._connection is None or self._connection.closed:
            self._connect()
        cursor = self._connection.cursor()
        try:
            yield cursor
            if not self.in_transaction:
                self._connection.commit()
        except (self.psycopg2.OperationalError, self.psycopg2.InterfaceError) as e:
            logger.warning(f"PostgreSQL operation failed: {e}")
            if not self._connection.closed:
                self._connection.rollback()
            raise TransientError("Database unavailable or lock timeout; please retry") from e
        except Exception:
            if not self.in_transaction and not self._connection.closed:
                self._connection.rollback()
            raise
        finally:
            cursor.close()

    def _ensure_table(self, cursor, table: str) -> None:
        if table in self._tables:
            return
        cursor.execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                id TEXT PRIMARY KEY,
                data JSONB NOT NULL,
                created_at TIMESTAMP DEFAULT NOW(),
                updated_at TIMESTAMP DEFAULT NOW()
            )
        """)
        cursor.execute(f"""
            CREATE INDEX IF NOT EXISTS idx_{table}_created_at
            ON {table}(created_at)
        """)
        self._tables.add(table)

    def save(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        with self._lock, self._cursor() as cursor:
            self._ensure_table(cursor, table)
            now = datetime.now(timezone.utc)
            cursor.execute(f"""
                INSERT INTO {table} (id, data, created_at, updated_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (id) DO UPDATE SET
                    data = EXCLUDED.data,
                    updated_at = EXCLUDED.updated_at
            """, (record_id, json.dumps(data, default=str), now, now))

    def load(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock, self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"SELECT data FROM {table} WHERE id = %s", (record_id,))
            row = cursor.fetchone()
            return dict(row['data']) if row else None

    def load_for_update(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load and row-lock a record until the current transaction ends"""
        with self._lock, self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"SELECT data FROM {table} WHERE id = %s FOR UPDATE", (record_id,))
            row = cursor.fetchone()
            return dict(row['data']) if row else None

    def load_all(self, table: str) -> List[Dict[str, Any]]:
        with self._lock, self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"SELECT data FROM {table} ORDER BY created_at")
            return [dict(row['data']) for row in cursor.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock, self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"DELETE FROM {table} WHERE id = %s", (record_id,))
            return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock, self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"SELECT 1 FROM {table} WHERE id = %s LIMIT 1", (record_id,))
            return cursor.fetchone() is not None

    def find(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Find records matching filters using JSONB containment"""
        with self._lock, self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(
                f"SELECT data FROM {table} WHERE data @> %s::jsonb ORDER BY created_at",
                (json.dumps(filters, default=str),)
            )
            return [dict(row['data']) for row in cursor.fetchall()]

    def count(self, table: str) -> int:
        with self._lock, self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"SELECT COUNT(*) AS count FROM {table}")
            return cursor.fetchone()['count']

    def clear_table(self, table: str) -> None:
        with self._lock, self._cursor() as cursor:
            self._ensure_table(cursor, table)
            cursor.execute(f"DELETE FROM {table}")

    def commit(self) -> None:
        if self._connection is not None and not self._connection.closed:
            self._connection.commit()

    def rollback(self) -> None:
        if self._connection is not None and not self._connection.closed:
            self._connection.rollback()
        self._tables.clear()

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def create_storage(database_url: str, lock_timeout: float = 5.0) -> StorageInterface:
    """
    Build a storage backend from a database URL.

    Supported forms: ``memory://``, ``sqlite:///path/to.db`` (or
    ``sqlite:///:memory:``) and ``postgresql://...``.
    """
    if database_url.startswith("memory://"):
        return InMemoryStorage(lock_timeout=lock_timeout)
    if database_url.startswith("sqlite:///"):
        return SQLiteStorage(database_url[len("sqlite:///"):] or ":memory:", lock_timeout=lock_timeout)
    if database_url.startswith(("postgresql://", "postgres://")):
        return PostgreSQLStorage(database_url, lock_timeout=lock_timeout)
    raise ValueError(f"Unsupported database_url: {database_url}")
