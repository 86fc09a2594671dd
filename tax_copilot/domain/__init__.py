"""
Domain types for Tax Copilot.

Chunks, documents, retrieval results, audit entries and the document status
state machine.
"""

from tax_copilot.domain.models import (
    AskResponse,
    AuditLogEntry,
    Citation,
    Confidence,
    Document,
    IngestResult,
    PageText,
    QueryFilters,
    RetrievedChunk,
    TextChunk,
)
from tax_copilot.domain.status import (
    ALLOWED_TRANSITIONS,
    DocumentStatus,
    can_transition,
    transition,
)

__all__ = [
    "AskResponse",
    "AuditLogEntry",
    "Citation",
    "Confidence",
    "Document",
    "IngestResult",
    "PageText",
    "QueryFilters",
    "RetrievedChunk",
    "TextChunk",
    "ALLOWED_TRANSITIONS",
    "DocumentStatus",
    "can_transition",
    "transition",
]
