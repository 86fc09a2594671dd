"""
Ingestion pipeline for Tax Copilot.

This module orchestrates the ingestion of one stored document:
1. Load document metadata and check the file type can be extracted
2. Mark the document Processing
3. Download bytes and extract per-page text
4. Chunk pages and embed every chunk
5. Replace the document's chunks in the search index
6. Mark the document Indexed, or Failed if any step after 2 raised
"""

from __future__ import annotations

import asyncio
import time

from tax_copilot.core.interfaces import (
    BlobStorage,
    DocumentRepository,
    EmbeddingService,
    SearchIndex,
    TextExtractor,
)
from tax_copilot.domain.models import IngestResult
from tax_copilot.domain.status import DocumentStatus, transition
from tax_copilot.ingestion.chunker import PageChunker
from tax_copilot.utils.cancellation import raise_if_cancelled
from tax_copilot.utils.exceptions import (
    DocumentNotFoundError,
    EmbeddingError,
    UnsupportedFormatError,
)
from tax_copilot.utils.logging import LoggerMixin


class IngestionPipeline(LoggerMixin):
    """
    Complete document ingestion pipeline.

    Every collaborator call is awaited before the next one starts. Status
    changes are persisted as soon as they happen so callers can poll progress.

    Args:
        documents: Repository holding document records and status.
        blob_storage: Storage holding the raw document bytes.
        extractor: Text extractor for the document's file type.
        chunker: Page-aware chunker.
        embeddings: Embedding service.
        search_index: Search index receiving the chunks.

    Example:
        >>> pipeline = IngestionPipeline(repo, storage, extractor, chunker, embeddings, index)
        >>> result = await pipeline.ingest("3f2a6c1e-...")
        >>> print(result)
        3f2a6c1e-...: 42 chunks -> 42 indexed in 5310 ms
    """

    def __init__(
        self,
        documents: DocumentRepository,
        blob_storage: BlobStorage,
        extractor: TextExtractor,
        chunker: PageChunker,
        embeddings: EmbeddingService,
        search_index: SearchIndex,
    ) -> None:
        super().__init__()

        self.documents = documents
        self.blob_storage = blob_storage
        self.extractor = extractor
        self.chunker = chunker
        self.embeddings = embeddings
        self.search_index = search_index

        self.logger.info(
            "IngestionPipeline initialized",
            chunk_size=chunker.chunk_size,
            chunk_overlap=chunker.chunk_overlap,
        )

    async def ingest(
        self,
        document_id: str,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestResult:
        """
        Ingest a stored document into the search index.

        Args:
            document_id: Document to ingest.
            cancel_event: Optional caller signal checked between steps and on
                every chunked page.

        Returns:
            IngestResult with chunk counts and elapsed time.

        Raises:
            DocumentNotFoundError: No document has this id. Status untouched.
            UnsupportedFormatError: No extractor for the file type. Status untouched.
            asyncio.CancelledError: The run was cancelled. Status is left as
                last persisted.
            Exception: Any collaborator failure after Processing, re-raised
                after the document is marked Failed.
        """
        started = time.perf_counter()
        warnings: list[str] = []
        self.logger.info("Starting ingestion", document_id=document_id)

        document = await self.documents.get_by_id(document_id)
        if document is None:
            self.logger.warning("Document not found", document_id=document_id)
            raise DocumentNotFoundError(document_id)

        if not self.extractor.supports_file_type(document.file_name):
            self.logger.warning(
                "Unsupported file format",
                document_id=document_id,
                file_name=document.file_name,
            )
            raise UnsupportedFormatError(document.file_name)

        raise_if_cancelled(cancel_event)

        status = transition(document.status, DocumentStatus.PROCESSING)
        await self.documents.update_status(document_id, status)

        try:
            raise_if_cancelled(cancel_event)
            data = await self.blob_storage.download(document_id, document.blob_path)

            raise_if_cancelled(cancel_event)
            pages = await self.extractor.extract(data, document.file_name)
            if not pages:
                self.logger.warning("No text extracted", document_id=document_id)
                warnings.append("No text could be extracted from the document")

            chunks = self.chunker.chunk(
                pages,
                document_id=document_id,
                document_title=document.title,
                jurisdiction=document.jurisdiction,
                tax_type=document.tax_type,
                version=document.version,
                effective_date=document.effective_date,
                cancel_event=cancel_event,
            )
            self.logger.debug("Document chunked", document_id=document_id, num_chunks=len(chunks))

            raise_if_cancelled(cancel_event)
            vectors = await self.embeddings.embed_batch([chunk.chunk_text for chunk in chunks])
            if len(vectors) != len(chunks):
                raise EmbeddingError(
                    "Embedding count does not match chunk count",
                    details={"chunks": len(chunks), "embeddings": len(vectors)},
                )
            for chunk, vector in zip(chunks, vectors):
                chunk.embedding = vector

            # Nothing guards the gap between delete and index; a crash here
            # leaves the document unsearchable until it is ingested again.
            raise_if_cancelled(cancel_event)
            await self.search_index.delete_chunks(document_id)
            indexed = await self.search_index.index_chunks(chunks)

            status = transition(status, DocumentStatus.INDEXED)
            await self.documents.update_status(document_id, status, chunk_count=len(chunks))

        except asyncio.CancelledError:
            self.logger.warning("Ingestion cancelled", document_id=document_id)
            raise

        except Exception as e:
            self.logger.error(
                "Ingestion failed",
                document_id=document_id,
                error=str(e),
                exc_info=True,
            )
            await self._mark_failed(document_id)
            raise

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        result = IngestResult(
            document_id=document_id,
            chunks_created=len(chunks),
            chunks_indexed=indexed,
            elapsed_ms=elapsed_ms,
            warnings=warnings,
        )
        self.logger.info(
            "Ingestion complete",
            document_id=document_id,
            num_pages=len(pages),
            num_chunks=len(chunks),
            num_indexed=indexed,
            elapsed_ms=elapsed_ms,
        )
        return result

    async def _mark_failed(self, document_id: str) -> None:
        """Best-effort move to Failed. The original error is what the caller sees."""
        try:
            status = transition(DocumentStatus.PROCESSING, DocumentStatus.FAILED)
            await self.documents.update_status(document_id, status)
        except Exception as e:
            self.logger.error(
                "Failed to mark document as failed",
                document_id=document_id,
                error=str(e),
            )
