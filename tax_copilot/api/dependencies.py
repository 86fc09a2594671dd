"""
FastAPI dependency injection for Tax Copilot components.

Components are built once per process by ``ServiceContainer`` and created
lazily, so the storage endpoints work without model credentials and only
the routes that need a model fail when the API key is missing.
"""

from functools import cached_property, lru_cache
from typing import Annotated

from fastapi import Depends

from tax_copilot.chat.audit import AuditTrail
from tax_copilot.chat.generator import LangChainAnswerGenerator
from tax_copilot.chat.pipeline import RAGQueryPipeline
from tax_copilot.chat.prompts import PROMPT_VERSION
from tax_copilot.config.settings import Settings, get_settings
from tax_copilot.core.embeddings import LangChainEmbeddingService, get_embedding_service
from tax_copilot.core.llm import get_llm
from tax_copilot.core.search_index import ChromaSearchIndex
from tax_copilot.ingestion.chunker import PageChunker
from tax_copilot.ingestion.documents import DocumentService
from tax_copilot.ingestion.extractors import CompositeTextExtractor
from tax_copilot.ingestion.headings import RegexHeadingDetector
from tax_copilot.ingestion.pipeline import IngestionPipeline
from tax_copilot.retrieval.hybrid import HybridSearchConfig
from tax_copilot.storage.blob_storage import LocalBlobStorage
from tax_copilot.storage.database import SqliteDatabase
from tax_copilot.storage.repositories import SqliteAuditLogRepository, SqliteDocumentRepository
from tax_copilot.utils.logging import LoggerMixin


class ServiceContainer(LoggerMixin):
    """
    Lazily built application components.

    Every component is a cached property; tests replace one by assigning
    the attribute before it is first read.

    Args:
        settings: Application settings.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @cached_property
    def database(self) -> SqliteDatabase:
        return SqliteDatabase(self.settings.storage.database_path)

    @cached_property
    def document_repository(self) -> SqliteDocumentRepository:
        return SqliteDocumentRepository(self.database)

    @cached_property
    def audit_repository(self) -> SqliteAuditLogRepository:
        return SqliteAuditLogRepository(self.database)

    @cached_property
    def blob_storage(self) -> LocalBlobStorage:
        return LocalBlobStorage(self.settings.storage.blob_root)

    @cached_property
    def extractor(self) -> CompositeTextExtractor:
        return CompositeTextExtractor()

    @cached_property
    def chunker(self) -> PageChunker:
        return PageChunker(
            chunk_size=self.settings.rag.chunk_size_chars,
            chunk_overlap=self.settings.rag.chunk_overlap_chars,
            heading_detector=RegexHeadingDetector(),
        )

    @cached_property
    def search_index(self) -> ChromaSearchIndex:
        rag = self.settings.rag
        return ChromaSearchIndex(
            self.settings.chroma,
            config=HybridSearchConfig(
                semantic_weight=rag.semantic_weight,
                keyword_weight=rag.keyword_weight,
                candidate_multiplier=rag.candidate_multiplier,
            ),
        )

    @cached_property
    def embedding_service(self) -> LangChainEmbeddingService:
        return get_embedding_service(self.settings)

    @cached_property
    def answer_generator(self) -> LangChainAnswerGenerator:
        return LangChainAnswerGenerator(get_llm(self.settings.llm))

    @cached_property
    def document_service(self) -> DocumentService:
        return DocumentService(
            repository=self.document_repository,
            blob_storage=self.blob_storage,
            extractor=self.extractor,
            max_file_size_bytes=self.settings.rag.max_file_size_mb * 1024 * 1024,
        )

    @cached_property
    def ingestion_pipeline(self) -> IngestionPipeline:
        return IngestionPipeline(
            documents=self.document_repository,
            blob_storage=self.blob_storage,
            extractor=self.extractor,
            chunker=self.chunker,
            embeddings=self.embedding_service,
            search_index=self.search_index,
        )

    @cached_property
    def audit_trail(self) -> AuditTrail:
        return AuditTrail(
            self.audit_repository,
            model=self.settings.llm.chat_model,
            prompt_version=PROMPT_VERSION,
        )

    @cached_property
    def query_pipeline(self) -> RAGQueryPipeline:
        return RAGQueryPipeline(
            embeddings=self.embedding_service,
            search_index=self.search_index,
            generator=self.answer_generator,
            audit=self.audit_trail,
            top_k=self.settings.rag.top_k,
            context_chunks=self.settings.rag.context_chunks,
        )

    def close(self) -> None:
        """Close the database connection if it was opened."""
        if "database" in self.__dict__:
            self.database.close()


@lru_cache()
def get_container() -> ServiceContainer:
    """
    Get the process-wide service container (cached).

    Returns:
        ServiceContainer built from the environment settings
    """
    return ServiceContainer(get_settings())


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


def get_document_service(container: ContainerDep) -> DocumentService:
    return container.document_service


def get_ingestion_pipeline(container: ContainerDep) -> IngestionPipeline:
    return container.ingestion_pipeline


def get_query_pipeline(container: ContainerDep) -> RAGQueryPipeline:
    return container.query_pipeline


def get_audit_repository(container: ContainerDep) -> SqliteAuditLogRepository:
    return container.audit_repository


# Type aliases for cleaner route signatures
DocumentServiceDep = Annotated[DocumentService, Depends(get_document_service)]
IngestionPipelineDep = Annotated[IngestionPipeline, Depends(get_ingestion_pipeline)]
QueryPipelineDep = Annotated[RAGQueryPipeline, Depends(get_query_pipeline)]
AuditRepositoryDep = Annotated[SqliteAuditLogRepository, Depends(get_audit_repository)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


__all__ = [
    "ServiceContainer",
    "get_container",
    "get_document_service",
    "get_ingestion_pipeline",
    "get_query_pipeline",
    "get_audit_repository",
    "ContainerDep",
    "DocumentServiceDep",
    "IngestionPipelineDep",
    "QueryPipelineDep",
    "AuditRepositoryDep",
    "SettingsDep",
]
