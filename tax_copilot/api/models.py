"""
API request and response models for Tax Copilot.

This module defines Pydantic models for API requests and responses. Field
names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tax_copilot.domain.models import AuditLogEntry, Document, IngestResult, QueryFilters


class ApiModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentResponse(ApiModel):
    """
    Document record as exposed by the API.

    Attributes:
        document_id: Document id
        title: Display title
        file_name: Original file name
        status: Lifecycle status (Uploaded, Processing, Indexed, Failed)
        chunk_count: Chunks indexed by the last successful ingestion
    """
    document_id: str = Field(..., description="Document id")
    title: str = Field(..., description="Document title")
    file_name: str = Field(..., description="Original file name")
    content_type: str = Field(..., description="MIME type given at upload")
    file_size_bytes: int = Field(..., description="Size of the stored file", ge=0)
    jurisdiction: str = Field(..., description="Jurisdiction, e.g. 'CA' or 'US-NY'")
    tax_type: str = Field(..., description="Tax type, e.g. 'GST' or 'income'")
    version: str = Field(..., description="Document version label")
    effective_date: Optional[datetime] = Field(None, description="Date the rules take effect")
    uploaded_by: str = Field(..., description="Uploader")
    status: str = Field(..., description="Lifecycle status")
    chunk_count: int = Field(0, description="Indexed chunk count")
    created_at: datetime
    updated_at: datetime
    indexed_at: Optional[datetime] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "documentId": "3f2a6c1e-9d1b-4f7e-8a55-0c3e2d1b7a90",
                "title": "Excise Tax Act",
                "fileName": "excise_tax_act.pdf",
                "contentType": "application/pdf",
                "fileSizeBytes": 1048576,
                "jurisdiction": "CA",
                "taxType": "GST",
                "version": "2024",
                "effectiveDate": "2024-01-01T00:00:00Z",
                "uploadedBy": "analyst@example.com",
                "status": "Indexed",
                "chunkCount": 412,
                "createdAt": "2024-03-01T12:00:00Z",
                "updatedAt": "2024-03-01T12:01:10Z",
                "indexedAt": "2024-03-01T12:01:10Z",
            }
        },
    )

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        return cls(
            document_id=document.document_id,
            title=document.title,
            file_name=document.file_name,
            content_type=document.content_type,
            file_size_bytes=document.file_size_bytes,
            jurisdiction=document.jurisdiction,
            tax_type=document.tax_type,
            version=document.version,
            effective_date=document.effective_date,
            uploaded_by=document.uploaded_by,
            status=str(document.status),
            chunk_count=document.chunk_count,
            created_at=document.created_at,
            updated_at=document.updated_at,
            indexed_at=document.indexed_at,
        )


class IngestResponse(ApiModel):
    """
    Response model for the ingest endpoint.

    Attributes:
        document_id: Ingested document
        chunks_created: Chunks produced by the chunker
        chunks_indexed: Chunks accepted by the search index
        elapsed_ms: Wall time of the ingestion
        warnings: Non-fatal issues found along the way
    """
    document_id: str
    chunks_created: int = Field(..., ge=0)
    chunks_indexed: int = Field(..., ge=0)
    elapsed_ms: int = Field(..., ge=0)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: IngestResult) -> "IngestResponse":
        return cls(
            document_id=result.document_id,
            chunks_created=result.chunks_created,
            chunks_indexed=result.chunks_indexed,
            elapsed_ms=result.elapsed_ms,
            warnings=list(result.warnings),
        )


class AskRequest(ApiModel):
    """
    Request model for the ask endpoint.

    Attributes:
        question: Question about the indexed tax documents
        jurisdiction: Optional exact-match jurisdiction filter
        tax_type: Optional exact-match tax type filter
        version: Optional exact-match version filter
    """
    question: str = Field(..., description="User's question", min_length=1, max_length=4000)
    jurisdiction: Optional[str] = Field(None, description="Jurisdiction filter")
    tax_type: Optional[str] = Field(None, description="Tax type filter")
    version: Optional[str] = Field(None, description="Version filter")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "question": "When must a GST registrant file a return?",
                "jurisdiction": "CA",
                "taxType": "GST",
            }
        },
    )

    @field_validator("jurisdiction", "tax_type", "version")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank filter values as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    def to_filters(self) -> Optional[QueryFilters]:
        filters = QueryFilters(
            jurisdiction=self.jurisdiction,
            tax_type=self.tax_type,
            version=self.version,
        )
        return None if filters.is_empty() else filters


class AuditLogResponse(ApiModel):
    """Audit entry as exposed by the API."""
    audit_log_id: str
    correlation_id: str
    query_text: str
    filters_json: Optional[str] = None
    retrieved_chunks_json: Optional[str] = None
    model: str
    prompt_version: str
    answer_text: Optional[str] = None
    latency_ms: int
    error_message: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: AuditLogEntry) -> "AuditLogResponse":
        return cls(
            audit_log_id=entry.audit_log_id,
            correlation_id=entry.correlation_id,
            query_text=entry.query_text,
            filters_json=entry.filters_json,
            retrieved_chunks_json=entry.retrieved_chunks_json,
            model=entry.model,
            prompt_version=entry.prompt_version,
            answer_text=entry.answer_text,
            latency_ms=entry.latency_ms,
            error_message=entry.error_message,
            created_at=entry.created_at,
        )


class HealthResponse(BaseModel):
    """
    Response model for health check endpoint.

    Attributes:
        status: Overall status (healthy/unhealthy)
        components: Status of each dependency
        version: API version
    """
    status: str = Field(..., description="Overall system status (healthy/unhealthy)")
    components: Dict[str, str] = Field(..., description="Per-component status")
    version: str = Field(..., description="API version")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "components": {
                    "database": "healthy",
                    "blob_storage": "healthy",
                    "search_index": "healthy",
                    "embedding_model": "healthy",
                    "chat_model": "healthy",
                },
                "version": "1.0.0",
            }
        }
    )


class InitResponse(BaseModel):
    """Response model for the storage initialization endpoint."""
    message: str
    components: Dict[str, str]


class ErrorResponse(BaseModel):
    """
    Standard error response model.

    Attributes:
        error: Error type/category
        message: Human-readable error message
        detail: Optional detailed error information
        correlation_id: Request correlation ID for tracing
    """
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    correlation_id: Optional[str] = Field(None, description="Request correlation ID")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "DocumentNotFoundError",
                "message": "Document not found: 3f2a6c1e-9d1b-4f7e-8a55-0c3e2d1b7a90",
                "detail": None,
                "correlation_id": "550e8400-e29b-41d4-a716-446655440000",
            }
        }
    )
