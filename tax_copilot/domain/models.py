"""
Domain models shared by the ingestion and query pipelines.

Internal records are plain dataclasses. ``Citation`` and ``AskResponse`` are
Pydantic models because they cross the model and HTTP boundaries as camelCase
JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tax_copilot.domain.status import DocumentStatus

Confidence = Literal["high", "medium", "low"]


@dataclass
class PageText:
    """Extracted text of one physical or estimated page."""

    page_number: int
    text: str


@dataclass
class TextChunk:
    """
    A retrievable unit of a document.

    ``embedding`` is attached by the ingestion pipeline after chunking.
    """

    chunk_id: str
    document_id: str
    document_title: str
    chunk_text: str
    page_number_start: int
    page_number_end: int
    section_heading: Optional[str] = None
    jurisdiction: str = ""
    tax_type: str = ""
    version: str = ""
    effective_date: Optional[datetime] = None
    embedding: Optional[list[float]] = None


@dataclass
class Document:
    """Stored document record governing ingestion."""

    document_id: str
    title: str
    file_name: str
    blob_path: str
    content_type: str
    file_size_bytes: int
    jurisdiction: str
    tax_type: str
    version: str
    effective_date: Optional[datetime]
    uploaded_by: str
    created_at: datetime
    updated_at: datetime
    status: DocumentStatus = DocumentStatus.UPLOADED
    chunk_count: int = 0
    indexed_at: Optional[datetime] = None


@dataclass
class RetrievedChunk:
    """Search result projection of a chunk."""

    chunk_id: str
    document_id: str
    document_title: str
    chunk_text: str
    page_number: int
    section_heading: Optional[str]
    score: float


@dataclass
class QueryFilters:
    """Exact-match filters applied together during search."""

    jurisdiction: Optional[str] = None
    tax_type: Optional[str] = None
    version: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.jurisdiction or self.tax_type or self.version)

    def to_dict(self) -> dict[str, Optional[str]]:
        """camelCase form used in audit records."""
        return {
            "jurisdiction": self.jurisdiction,
            "taxType": self.tax_type,
            "version": self.version,
        }


@dataclass
class AuditLogEntry:
    """One record of a query attempt, successful or not."""

    audit_log_id: str
    correlation_id: str
    query_text: str
    model: str
    prompt_version: str
    latency_ms: int
    created_at: datetime
    filters_json: Optional[str] = None
    retrieved_chunks_json: Optional[str] = None
    answer_text: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class IngestResult:
    """
    Result of an ingestion run.

    Attributes:
        document_id: Ingested document.
        chunks_created: Chunks produced by the chunker.
        chunks_indexed: Chunks the search index reported as stored.
        elapsed_ms: Wall-clock time from pipeline entry to completion.
    """

    document_id: str
    chunks_created: int
    chunks_indexed: int
    elapsed_ms: int
    warnings: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return (
            f"{self.document_id}: "
            f"{self.chunks_created} chunks -> "
            f"{self.chunks_indexed} indexed in {self.elapsed_ms} ms"
        )


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Citation(_CamelModel):
    """Reference from an answer to one of the context chunks."""

    document_title: str = Field(default="")
    page_number: int = Field(default=0)
    section_heading: Optional[str] = None
    chunk_id: str


class AskResponse(_CamelModel):
    """Grounded answer returned by the query pipeline."""

    answer: str
    citations: list[Citation] = Field(default_factory=list)
    confidence: Confidence = "low"
