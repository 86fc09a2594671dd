"""
SQLite repositories for document records and audit log entries.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Optional

from tax_copilot.core.interfaces import AuditLogRepository, DocumentRepository
from tax_copilot.domain.models import AuditLogEntry, Document
from tax_copilot.domain.status import DocumentStatus
from tax_copilot.storage.database import SqliteDatabase
from tax_copilot.utils.exceptions import AuditPersistenceError, StorageError
from tax_copilot.utils.logging import LoggerMixin

_DOCUMENT_COLUMNS = (
    "document_id, title, file_name, blob_path, content_type, file_size_bytes, "
    "jurisdiction, tax_type, version, effective_date, uploaded_by, "
    "created_at, updated_at, status, chunk_count, indexed_at"
)

_AUDIT_COLUMNS = (
    "audit_log_id, correlation_id, query_text, filters_json, retrieved_chunks_json, "
    "model, prompt_version, answer_text, latency_ms, error_message, created_at"
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        document_id=row["document_id"],
        title=row["title"],
        file_name=row["file_name"],
        blob_path=row["blob_path"],
        content_type=row["content_type"],
        file_size_bytes=row["file_size_bytes"],
        jurisdiction=row["jurisdiction"],
        tax_type=row["tax_type"],
        version=row["version"],
        effective_date=_from_iso(row["effective_date"]),
        uploaded_by=row["uploaded_by"],
        created_at=_from_iso(row["created_at"]),
        updated_at=_from_iso(row["updated_at"]),
        status=DocumentStatus(row["status"]),
        chunk_count=row["chunk_count"],
        indexed_at=_from_iso(row["indexed_at"]),
    )


def _row_to_audit(row: sqlite3.Row) -> AuditLogEntry:
    return AuditLogEntry(
        audit_log_id=row["audit_log_id"],
        correlation_id=row["correlation_id"],
        query_text=row["query_text"],
        filters_json=row["filters_json"],
        retrieved_chunks_json=row["retrieved_chunks_json"],
        model=row["model"],
        prompt_version=row["prompt_version"],
        answer_text=row["answer_text"],
        latency_ms=row["latency_ms"],
        error_message=row["error_message"],
        created_at=_from_iso(row["created_at"]),
    )


class SqliteDocumentRepository(DocumentRepository, LoggerMixin):
    """Document records stored in the ``documents`` table."""

    def __init__(self, database: SqliteDatabase) -> None:
        self.database = database

    async def create(self, document: Document) -> str:
        self.database.execute(
            f"INSERT INTO documents ({_DOCUMENT_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                document.document_id,
                document.title,
                document.file_name,
                document.blob_path,
                document.content_type,
                document.file_size_bytes,
                document.jurisdiction,
                document.tax_type,
                document.version,
                _to_iso(document.effective_date),
                document.uploaded_by,
                _to_iso(document.created_at),
                _to_iso(document.updated_at),
                int(document.status),
                document.chunk_count,
                _to_iso(document.indexed_at),
            ),
        )
        self.logger.info("document_created", document_id=document.document_id)
        return document.document_id

    async def get_by_id(self, document_id: str) -> Optional[Document]:
        row = self.database.fetch_one(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE document_id = ?",
            (document_id,),
        )
        return _row_to_document(row) if row is not None else None

    async def get_all(self) -> list[Document]:
        """All documents, newest first."""
        rows = self.database.fetch_all(
            f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY created_at DESC"
        )
        return [_row_to_document(row) for row in rows]

    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        chunk_count: Optional[int] = None,
    ) -> None:
        now = _to_iso(utc_now())
        updated = self.database.execute(
            "UPDATE documents "
            "SET status = ?, "
            "    chunk_count = COALESCE(?, chunk_count), "
            "    indexed_at = CASE WHEN ? = ? THEN ? ELSE indexed_at END, "
            "    updated_at = ? "
            "WHERE document_id = ?",
            (
                int(status),
                chunk_count,
                int(status),
                int(DocumentStatus.INDEXED),
                now,
                now,
                document_id,
            ),
        )
        if updated == 0:
            self.logger.warning("status_update_missed", document_id=document_id, status=str(status))
            return

        self.logger.info(
            "document_status_updated",
            document_id=document_id,
            status=str(status),
            chunk_count=chunk_count,
        )


class SqliteAuditLogRepository(AuditLogRepository, LoggerMixin):
    """Append-only audit entries stored in the ``audit_logs`` table."""

    def __init__(self, database: SqliteDatabase) -> None:
        self.database = database

    async def create(self, entry: AuditLogEntry) -> None:
        try:
            self.database.execute(
                f"INSERT INTO audit_logs ({_AUDIT_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    entry.audit_log_id,
                    entry.correlation_id,
                    entry.query_text,
                    entry.filters_json,
                    entry.retrieved_chunks_json,
                    entry.model,
                    entry.prompt_version,
                    entry.answer_text,
                    entry.latency_ms,
                    entry.error_message,
                    _to_iso(entry.created_at),
                ),
            )
        except StorageError as e:
            raise AuditPersistenceError(
                "Failed to write audit log entry",
                details={"audit_log_id": entry.audit_log_id},
                cause=e,
            ) from e

        self.logger.debug("audit_log_created", audit_log_id=entry.audit_log_id)

    async def get_recent(self, take: int = 50) -> list[AuditLogEntry]:
        """Most recent entries first."""
        rows = self.database.fetch_all(
            f"SELECT {_AUDIT_COLUMNS} FROM audit_logs ORDER BY created_at DESC LIMIT ?",
            (take,),
        )
        return [_row_to_audit(row) for row in rows]

    async def get_by_correlation_id(self, correlation_id: str) -> list[AuditLogEntry]:
        rows = self.database.fetch_all(
            f"SELECT {_AUDIT_COLUMNS} FROM audit_logs WHERE correlation_id = ? ORDER BY created_at",
            (correlation_id,),
        )
        return [_row_to_audit(row) for row in rows]
