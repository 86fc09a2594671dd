"""
Audit trail of query attempts.

Every call to the query pipeline produces exactly one entry, whether it
answered or failed. Writing the entry never raises: a persistence failure is
logged and dropped so it cannot hide the query's own result or error.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

from tax_copilot.core.interfaces import AuditLogRepository
from tax_copilot.domain.models import AuditLogEntry, QueryFilters, RetrievedChunk
from tax_copilot.utils.logging import LoggerMixin


def serialize_filters(filters: Optional[QueryFilters]) -> Optional[str]:
    if filters is None:
        return None
    return json.dumps(filters.to_dict())


def serialize_retrieved(chunks: Optional[Sequence[RetrievedChunk]]) -> Optional[str]:
    """Summary of retrieved chunks, or None when retrieval never completed."""
    if chunks is None:
        return None
    return json.dumps([
        {
            "chunkId": chunk.chunk_id,
            "score": chunk.score,
            "documentTitle": chunk.document_title,
            "pageNumber": chunk.page_number,
        }
        for chunk in chunks
    ])


class AuditTrail(LoggerMixin):
    """Builds and persists audit entries for query attempts."""

    def __init__(self, repository: AuditLogRepository, model: str, prompt_version: str) -> None:
        self.repository = repository
        self.model = model
        self.prompt_version = prompt_version

    def build_entry(
        self,
        correlation_id: str,
        question: str,
        filters: Optional[QueryFilters],
        retrieved: Optional[Sequence[RetrievedChunk]],
        answer: Optional[str],
        latency_ms: int,
        error_message: Optional[str],
    ) -> AuditLogEntry:
        return AuditLogEntry(
            audit_log_id=str(uuid.uuid4()),
            correlation_id=correlation_id,
            query_text=question,
            filters_json=serialize_filters(filters),
            retrieved_chunks_json=serialize_retrieved(retrieved),
            model=self.model,
            prompt_version=self.prompt_version,
            answer_text=answer,
            latency_ms=latency_ms,
            error_message=error_message,
            created_at=datetime.now(timezone.utc),
        )

    async def record(
        self,
        correlation_id: str,
        question: str,
        filters: Optional[QueryFilters],
        retrieved: Optional[Sequence[RetrievedChunk]],
        answer: Optional[str],
        latency_ms: int,
        error_message: Optional[str],
    ) -> Optional[AuditLogEntry]:
        """
        Build and persist the entry for one query attempt.

        Returns:
            The written entry, or None if building or writing it failed.
        """
        try:
            entry = self.build_entry(
                correlation_id, question, filters, retrieved, answer, latency_ms, error_message
            )
            await self.repository.create(entry)
        except Exception as e:
            self.logger.error(
                "audit_write_failed",
                correlation_id=correlation_id,
                error=str(e),
            )
            return None

        self.logger.info(
            "audit_recorded",
            audit_log_id=entry.audit_log_id,
            correlation_id=entry.correlation_id,
            latency_ms=entry.latency_ms,
            failed=entry.error_message is not None,
        )
        return entry
