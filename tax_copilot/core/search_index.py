"""
ChromaDB search index for Tax Copilot.

This module stores chunk vectors with their metadata and serves hybrid search:
- Vector similarity query with exact-match metadata filters
- BM25 keyword ranking over the same filtered chunk set
- Reciprocal Rank Fusion of both rankings
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import chromadb
from chromadb.api.models.Collection import Collection

from tax_copilot.config.settings import ChromaSettings
from tax_copilot.core.interfaces import SearchIndex
from tax_copilot.domain.models import QueryFilters, RetrievedChunk, TextChunk
from tax_copilot.retrieval.bm25 import BM25Retriever
from tax_copilot.retrieval.hybrid import HybridRanker, HybridSearchConfig
from tax_copilot.utils.exceptions import SearchIndexError
from tax_copilot.utils.logging import LoggerMixin


def build_where(filters: Optional[QueryFilters]) -> Optional[dict[str, Any]]:
    """
    Translate query filters into a Chroma ``where`` clause.

    Every set filter must match exactly; unset filters are ignored.
    """
    if filters is None:
        return None

    conditions = [
        {key: value}
        for key, value in (
            ("jurisdiction", filters.jurisdiction),
            ("tax_type", filters.tax_type),
            ("version", filters.version),
        )
        if value
    ]
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return {"$and": conditions}


def chunk_metadata(chunk: TextChunk) -> dict[str, Any]:
    """Flatten a chunk into Chroma metadata. Chroma rejects None values, so they are left out."""
    metadata: dict[str, Any] = {
        "document_id": chunk.document_id,
        "document_title": chunk.document_title,
        "page_number": chunk.page_number_start,
        "page_number_end": chunk.page_number_end,
        "jurisdiction": chunk.jurisdiction,
        "tax_type": chunk.tax_type,
        "version": chunk.version,
    }
    if chunk.section_heading:
        metadata["section_heading"] = chunk.section_heading
    if chunk.effective_date is not None:
        metadata["effective_date"] = chunk.effective_date.isoformat()
    return metadata


def _to_retrieved(chunk_id: str, text: str, metadata: dict[str, Any] | None, score: float) -> RetrievedChunk:
    metadata = metadata or {}
    return RetrievedChunk(
        chunk_id=chunk_id,
        document_id=str(metadata.get("document_id", "")),
        document_title=str(metadata.get("document_title", "")),
        chunk_text=text or "",
        page_number=int(metadata.get("page_number", 0)),
        section_heading=metadata.get("section_heading"),
        score=score,
    )


class ChromaSearchIndex(SearchIndex, LoggerMixin):
    """
    Search index backed by a ChromaDB collection.

    Embeddings are computed by the ingestion pipeline and stored as given; the
    collection has no embedding function of its own.

    Example:
        >>> index = ChromaSearchIndex(get_settings().chroma)
        >>> await index.ensure_index()
        >>> await index.index_chunks(chunks)
        12
    """

    def __init__(
        self,
        settings: ChromaSettings,
        config: HybridSearchConfig | None = None,
        client: chromadb.ClientAPI | None = None,
    ) -> None:
        self.settings = settings
        self.config = config or HybridSearchConfig()
        self.ranker = HybridRanker(self.config)
        self._client = client
        self._collection: Collection | None = None

        self.logger.info(
            "search_index_initialized",
            collection=settings.collection,
            in_memory=settings.in_memory,
        )

    @property
    def collection_name(self) -> str:
        return self.settings.collection

    @property
    def client(self) -> chromadb.ClientAPI:
        """Get or create the ChromaDB client."""
        if self._client is None:
            self._client = self._create_client()
        return self._client

    @property
    def collection(self) -> Collection:
        """Get or create the chunk collection."""
        if self._collection is None:
            self._collection = self.client.get_or_create_collection(
                name=self.settings.collection,
                metadata={"hnsw:space": "cosine"},
                embedding_function=None,
            )
            self.logger.info(
                "collection_ready",
                collection=self.settings.collection,
                count=self._collection.count(),
            )
        return self._collection

    def _create_client(self) -> chromadb.ClientAPI:
        try:
            if self.settings.in_memory:
                self.logger.info("creating_in_memory_client")
                return chromadb.EphemeralClient()

            self.logger.info(
                "creating_http_client",
                host=self.settings.host,
                port=self.settings.port,
            )
            client = chromadb.HttpClient(host=self.settings.host, port=self.settings.port)
            client.heartbeat()
            return client

        except Exception as e:
            self.logger.error(
                "chromadb_connection_failed",
                error=str(e),
                host=self.settings.host,
                port=self.settings.port,
            )
            raise SearchIndexError(
                f"Failed to connect to ChromaDB at {self.settings.host}:{self.settings.port}",
                cause=e,
            ) from e

    async def index_exists(self) -> bool:
        """Return True if the chunk collection already exists."""
        try:
            names = [
                c if isinstance(c, str) else c.name
                for c in self.client.list_collections()
            ]
        except Exception as e:
            self.logger.error("list_collections_failed", error=str(e))
            raise SearchIndexError("Failed to list collections", cause=e) from e
        return self.settings.collection in names

    async def ensure_index(self) -> bool:
        """Create the chunk collection if missing. Returns True if it was created."""
        created = not await self.index_exists()
        _ = self.collection
        return created

    async def health_check(self) -> bool:
        """Server answers a heartbeat and the chunk collection exists."""
        try:
            self.client.heartbeat()
            return await self.index_exists()
        except Exception as e:
            self.logger.error("health_check_failed", error=str(e))
            return False

    async def delete_chunks(self, document_id: str) -> None:
        try:
            existing = self.collection.get(where={"document_id": document_id}, include=[])
            ids = existing.get("ids") or []
            if ids:
                self.collection.delete(ids=ids)
        except Exception as e:
            self.logger.error("delete_chunks_failed", document_id=document_id, error=str(e))
            raise SearchIndexError(
                f"Failed to delete chunks for document {document_id}",
                details={"document_id": document_id},
                cause=e,
            ) from e

        self.logger.info("chunks_deleted", document_id=document_id, count=len(ids))

    async def index_chunks(self, chunks: Sequence[TextChunk]) -> int:
        if not chunks:
            return 0

        missing = [chunk.chunk_id for chunk in chunks if chunk.embedding is None]
        if missing:
            raise SearchIndexError(
                "Chunks must carry embeddings before indexing",
                details={"missing": len(missing)},
            )

        try:
            self.collection.upsert(
                ids=[chunk.chunk_id for chunk in chunks],
                embeddings=[list(chunk.embedding) for chunk in chunks],
                documents=[chunk.chunk_text for chunk in chunks],
                metadatas=[chunk_metadata(chunk) for chunk in chunks],
            )
        except Exception as e:
            self.logger.error("index_chunks_failed", count=len(chunks), error=str(e))
            raise SearchIndexError("Failed to index chunks", cause=e) from e

        self.logger.info("chunks_indexed", count=len(chunks))
        return len(chunks)

    async def search(
        self,
        query: str,
        query_vector: Sequence[float],
        filters: Optional[QueryFilters],
        top_k: int,
    ) -> list[RetrievedChunk]:
        where = build_where(filters)
        self.logger.info("searching", query_length=len(query), top_k=top_k, has_filter=where is not None)

        try:
            semantic = self._vector_search(query_vector, where, top_k * self.config.candidate_multiplier)
            keyword = self._keyword_search(query, where, top_k * self.config.candidate_multiplier)
        except SearchIndexError:
            raise
        except Exception as e:
            self.logger.error("search_failed", error=str(e))
            raise SearchIndexError("Search failed", cause=e) from e

        results = self.ranker.fuse(semantic, keyword, top_k)
        self.logger.info("search_completed", results_count=len(results))
        return results

    def _vector_search(
        self,
        query_vector: Sequence[float],
        where: Optional[dict[str, Any]],
        n_results: int,
    ) -> list[tuple[RetrievedChunk, float]]:
        if self.collection.count() == 0:
            return []

        response = self.collection.query(
            query_embeddings=[list(query_vector)],
            n_results=n_results,
            where=where,
            include=["documents", "metadatas", "distances"],
        )

        ids = (response.get("ids") or [[]])[0]
        documents = (response.get("documents") or [[]])[0]
        metadatas = (response.get("metadatas") or [[]])[0]
        distances = (response.get("distances") or [[]])[0]

        results = []
        for i, chunk_id in enumerate(ids):
            # Cosine distance to similarity
            similarity = 1.0 - float(distances[i])
            results.append((_to_retrieved(chunk_id, documents[i], metadatas[i], similarity), similarity))
        return results

    def _keyword_search(
        self,
        query: str,
        where: Optional[dict[str, Any]],
        limit: int,
    ) -> list[tuple[RetrievedChunk, float]]:
        pool = self.collection.get(where=where, include=["documents", "metadatas"])
        ids = pool.get("ids") or []
        if not ids:
            return []

        documents = pool.get("documents") or [""] * len(ids)
        metadatas = pool.get("metadatas") or [{}] * len(ids)
        candidates = [
            _to_retrieved(chunk_id, documents[i], metadatas[i], 0.0)
            for i, chunk_id in enumerate(ids)
        ]
        return BM25Retriever(candidates, k=limit).retrieve(query)
