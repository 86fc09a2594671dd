"""
SQLite database client holding document records and the audit trail.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Any, Sequence

from tax_copilot.utils.exceptions import StorageError
from tax_copilot.utils.logging import LoggerMixin

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    document_id     TEXT PRIMARY KEY,
    title           TEXT NOT NULL,
    file_name       TEXT NOT NULL,
    blob_path       TEXT NOT NULL,
    content_type    TEXT NOT NULL,
    file_size_bytes INTEGER NOT NULL,
    jurisdiction    TEXT NOT NULL,
    tax_type        TEXT NOT NULL,
    version         TEXT NOT NULL,
    effective_date  TEXT,
    uploaded_by     TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    status          INTEGER NOT NULL DEFAULT 0,
    chunk_count     INTEGER NOT NULL DEFAULT 0,
    indexed_at      TEXT
);

CREATE TABLE IF NOT EXISTS audit_logs (
    audit_log_id          TEXT PRIMARY KEY,
    correlation_id        TEXT NOT NULL,
    query_text            TEXT NOT NULL,
    filters_json          TEXT,
    retrieved_chunks_json TEXT,
    model                 TEXT NOT NULL,
    prompt_version        TEXT NOT NULL,
    answer_text           TEXT,
    latency_ms            INTEGER NOT NULL,
    error_message         TEXT,
    created_at            TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS ix_audit_logs_created_at ON audit_logs (created_at DESC);
CREATE INDEX IF NOT EXISTS ix_audit_logs_correlation_id ON audit_logs (correlation_id);
"""


class SqliteDatabase(LoggerMixin):
    """
    SQLite client with a single shared connection.

    Statements are serialized with a lock so the connection can be shared by
    request handlers running on different threads.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._connection = sqlite3.connect(path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.Lock()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def initialize_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        try:
            with self._lock:
                self._connection.executescript(SCHEMA)
                self._connection.commit()
        except sqlite3.Error as e:
            raise StorageError("Failed to create database schema", cause=e) from e
        self.logger.info("database_schema_ready", path=self.path)

    def execute(self, query: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement, commit, and return the affected row count."""
        try:
            with self._lock:
                cursor = self._connection.execute(query, params)
                self._connection.commit()
                return cursor.rowcount
        except sqlite3.Error as e:
            self.logger.error("database_write_failed", error=str(e))
            raise StorageError("Database write failed", cause=e) from e

    def fetch_all(self, query: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        try:
            with self._lock:
                return self._connection.execute(query, params).fetchall()
        except sqlite3.Error as e:
            self.logger.error("database_read_failed", error=str(e))
            raise StorageError("Database read failed", cause=e) from e

    def fetch_one(self, query: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        rows = self.fetch_all(query, params)
        return rows[0] if rows else None

    def table_exists(self, name: str) -> bool:
        row = self.fetch_one(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?",
            (name,),
        )
        return row is not None

    def test_connection(self) -> bool:
        try:
            self.fetch_one("SELECT 1")
            return True
        except StorageError:
            return False

    def close(self) -> None:
        """Close the database connection."""
        self._connection.close()

    def __enter__(self) -> "SqliteDatabase":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
