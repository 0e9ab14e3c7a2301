"""
Storage Backends

Loan records and audit events are persisted as JSON documents grouped by
table name ("loans", "audit_events"). LoanManager accepts any
StorageInterface; InMemoryStorage serves tests and throwaway sessions,
SQLiteStorage keeps data on disk.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import copy
import json
import logging
import sqlite3
import threading


logger = logging.getLogger("loan_tracker.storage")

Document = Dict[str, Any]


@dataclass
class StorageRecord:
    """Identity and timestamps shared by every persisted record"""
    id: str
    created_at: datetime
    updated_at: datetime

    def touch(self, now: datetime) -> None:
        """Mark the record as modified at `now`"""
        self.updated_at = now


class StorageInterface(ABC):
    """
    Document store keyed by (table, record id).

    Writes made inside `atomic()` become visible together or not at all.
    """

    def __init__(self):
        # Held by every operation, and by atomic() for its whole block
        self._lock = threading.RLock()
        self._depth = 0

    @abstractmethod
    def save(self, table: str, record_id: str, data: Document) -> None:
        """Insert or replace a document"""

    @abstractmethod
    def load(self, table: str, record_id: str) -> Optional[Document]:
        """Document by id, or None"""

    @abstractmethod
    def load_all(self, table: str) -> List[Document]:
        """Every document in a table, oldest first"""

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """Remove a document; False when it did not exist"""

    @abstractmethod
    def exists(self, table: str, record_id: str) -> bool:
        pass

    @abstractmethod
    def count(self, table: str) -> int:
        pass

    @abstractmethod
    def clear_table(self, table: str) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def find(self, table: str, filters: Dict[str, Any]) -> List[Document]:
        """Documents whose top-level keys equal every filter value"""
        return [
            document for document in self.load_all(table)
            if all(key in document and document[key] == value for key, value in filters.items())
        ]

    def begin_transaction(self) -> None:
        pass

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass

    @contextmanager
    def atomic(self):
        """
        Group a load-mutate-save sequence into one transaction

        Other threads block until the block ends, so they never see its
        partial writes or slip their own in between. A nested block joins
        the outermost transaction.
        """
        with self._lock:
            self._depth += 1
            try:
                if self._depth == 1:
                    self.begin_transaction()
                yield
            except Exception:
                if self._depth == 1:
                    self.rollback()
                raise
            else:
                if self._depth == 1:
                    self.commit()
            finally:
                self._depth -= 1


class InMemoryStorage(StorageInterface):
    """
    Dict-backed store.

    Documents pass through JSON on save so they look exactly as they would
    coming back from SQLite. Transactions snapshot the whole store and
    restore it on rollback.
    """

    def __init__(self):
        super().__init__()
        self._tables: Dict[str, Dict[str, Document]] = {}
        self._snapshot: Optional[Dict[str, Dict[str, Document]]] = None

    def _rows(self, table: str) -> Dict[str, Document]:
        return self._tables.setdefault(table, {})

    def save(self, table: str, record_id: str, data: Document) -> None:
        with self._lock:
            self._rows(table)[record_id] = json.loads(json.dumps(data, default=str))

    def load(self, table: str, record_id: str) -> Optional[Document]:
        with self._lock:
            return copy.deepcopy(self._rows(table).get(record_id))

    def load_all(self, table: str) -> List[Document]:
        with self._lock:
            return copy.deepcopy(list(self._rows(table).values()))

    def delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            return self._rows(table).pop(record_id, None) is not None

    def exists(self, table: str, record_id: str) -> bool:
        with self._lock:
            return record_id in self._rows(table)

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._rows(table))

    def clear_table(self, table: str) -> None:
        with self._lock:
            self._tables[table] = {}

    def close(self) -> None:
        pass

    def begin_transaction(self) -> None:
        with self._lock:
            self._snapshot = copy.deepcopy(self._tables)

    def commit(self) -> None:
        with self._lock:
            self._snapshot = None

    def rollback(self) -> None:
        with self._lock:
            if self._snapshot is not None:
                self._tables = self._snapshot
                self._snapshot = None
                logger.debug("In-memory transaction rolled back")


SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    kind TEXT NOT NULL,
    id TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    PRIMARY KEY (kind, id)
)
"""

UPSERT = """
INSERT INTO documents (kind, id, data, created_at, updated_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT (kind, id) DO UPDATE SET
    data = excluded.data,
    updated_at = excluded.updated_at
"""


class SQLiteStorage(StorageInterface):
    """SQLite store; a single `documents` table holds every table name as `kind`"""

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        super().__init__()
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level='DEFERRED')
        self._conn.row_factory = sqlite3.Row
        self._in_transaction = False

        with self._lock:
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
                self._conn.execute("PRAGMA synchronous = NORMAL")
            self._conn.execute(SCHEMA)
            self._conn.commit()
        logger.debug("SQLite storage opened at %s", self.db_path)

    def _write(self, sql: str, params: tuple) -> sqlite3.Cursor:
        with self._lock:
            cursor = self._conn.execute(sql, params)
            # Outside atomic() every write commits on its own
            if not self._in_transaction:
                self._conn.commit()
            return cursor

    def _read(self, sql: str, params: tuple) -> List[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def save(self, table: str, record_id: str, data: Document) -> None:
        now = datetime.now(timezone.utc).isoformat()
        self._write(UPSERT, (table, record_id, json.dumps(data, default=str), now, now))

    def load(self, table: str, record_id: str) -> Optional[Document]:
        rows = self._read("SELECT data FROM documents WHERE kind = ? AND id = ?", (table, record_id))
        return json.loads(rows[0]['data']) if rows else None

    def load_all(self, table: str) -> List[Document]:
        rows = self._read(
            "SELECT data FROM documents WHERE kind = ? ORDER BY created_at, rowid", (table,)
        )
        return [json.loads(row['data']) for row in rows]

    def delete(self, table: str, record_id: str) -> bool:
        cursor = self._write("DELETE FROM documents WHERE kind = ? AND id = ?", (table, record_id))
        return cursor.rowcount > 0

    def exists(self, table: str, record_id: str) -> bool:
        rows = self._read("SELECT 1 FROM documents WHERE kind = ? AND id = ? LIMIT 1", (table, record_id))
        return bool(rows)

    def count(self, table: str) -> int:
        rows = self._read("SELECT COUNT(*) AS n FROM documents WHERE kind = ?", (table,))
        return rows[0]['n']

    def clear_table(self, table: str) -> None:
        self._write("DELETE FROM documents WHERE kind = ?", (table,))

    def begin_transaction(self) -> None:
        with self._lock:
            # The DEFERRED isolation level opens the SQLite transaction on the first write
            self._in_transaction = True

    def commit(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._conn.commit()
                self._in_transaction = False

    def rollback(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._conn.rollback()
                self._in_transaction = False

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
