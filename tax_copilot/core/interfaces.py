"""
Collaborator contracts consumed by the ingestion and query pipelines.

The pipelines only ever talk to these abstractions, so each concrete
integration (PyMuPDF, OpenAI, ChromaDB, SQLite, local disk) can be swapped or
mocked in isolation. All I/O-bound operations are coroutines; cancellation of
the awaiting task propagates into them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from tax_copilot.domain.models import (
    AskResponse,
    AuditLogEntry,
    Document,
    PageText,
    QueryFilters,
    RetrievedChunk,
    TextChunk,
)
from tax_copilot.domain.status import DocumentStatus


class TextExtractor(ABC):
    """Turns raw document bytes into ordered per-page text."""

    @abstractmethod
    async def extract(self, data: bytes, file_name: str) -> list[PageText]:
        """
        Extract page text from a document.

        Args:
            data: Raw file content.
            file_name: Original file name, used to pick the format.

        Returns:
            Pages in reading order. Pages with no text may be omitted.
        """
        ...

    @abstractmethod
    def supports_file_type(self, file_name: str) -> bool:
        """Return True if this extractor can handle ``file_name``."""
        ...


class EmbeddingService(ABC):
    """
    Produces fixed-length vectors for text.

    Batch size is an internal tuning parameter of each implementation.
    """

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        ...

    @abstractmethod
    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one vector per input text, in input order."""
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True if the provider answers a trivial request."""
        ...


class SearchIndex(ABC):
    """Stores chunk vectors and answers hybrid (vector + keyword) queries."""

    @abstractmethod
    async def ensure_index(self) -> bool:
        """Create the chunk index if missing. Returns True if it was created."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the backend is reachable and the chunk index exists."""
        ...

    @abstractmethod
    async def delete_chunks(self, document_id: str) -> None:
        """Remove every chunk of ``document_id``. A no-op when there are none."""
        ...

    @abstractmethod
    async def index_chunks(self, chunks: Sequence[TextChunk]) -> int:
        """Store chunks with their embeddings and return how many were indexed."""
        ...

    @abstractmethod
    async def search(
        self,
        query: str,
        query_vector: Sequence[float],
        filters: Optional[QueryFilters],
        top_k: int,
    ) -> list[RetrievedChunk]:
        """Return up to ``top_k`` chunks ranked best first."""
        ...


class AnswerGenerator(ABC):
    """Synthesizes a grounded answer from context chunks."""

    @abstractmethod
    async def generate(
        self, question: str, context_chunks: Sequence[RetrievedChunk]
    ) -> AskResponse:
        """
        Answer ``question`` using only ``context_chunks``.

        Citations in the response reference only chunk ids present in the
        supplied context.
        """
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True if the chat model answers a trivial prompt."""
        ...


class DocumentRepository(ABC):
    """Persistence for document records."""

    @abstractmethod
    async def get_by_id(self, document_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def update_status(
        self,
        document_id: str,
        status: DocumentStatus,
        chunk_count: Optional[int] = None,
    ) -> None:
        """Persist a status change immediately. ``None`` keeps the chunk count."""
        ...


class BlobStorage(ABC):
    """Raw document byte storage."""

    @abstractmethod
    async def download(self, document_id: str, blob_path: Optional[str] = None) -> bytes:
        """Bytes of ``document_id``, read from ``blob_path`` when the caller has it."""
        ...


class AuditLogRepository(ABC):
    """Append-only store of query audit entries."""

    @abstractmethod
    async def create(self, entry: AuditLogEntry) -> None:
        ...

    @abstractmethod
    async def get_recent(self, take: int = 50) -> list[AuditLogEntry]:
        """Newest entries first."""
        ...

    @abstractmethod
    async def get_by_correlation_id(self, correlation_id: str) -> list[AuditLogEntry]:
        """Entries written for one request, oldest first."""
        ...
