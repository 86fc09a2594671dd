"""
RAG query pipeline for Tax Copilot.

Answers a question in four awaited steps: embed the question, run hybrid
search with the caller's filters, keep the first ``context_chunks`` results,
and ask the answer generator. One audit entry is written for every call, on
success, failure and cancellation alike.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from typing import Optional

from tax_copilot.chat.audit import AuditTrail
from tax_copilot.core.interfaces import AnswerGenerator, EmbeddingService, SearchIndex
from tax_copilot.domain.models import AskResponse, QueryFilters, RetrievedChunk
from tax_copilot.utils.cancellation import raise_if_cancelled
from tax_copilot.utils.exceptions import ValidationError
from tax_copilot.utils.logging import LoggerMixin, get_correlation_id


class RAGQueryPipeline(LoggerMixin):
    """
    Question answering over indexed tax documents.

    Args:
        embeddings: Embedding service for the question.
        search_index: Hybrid search index.
        generator: Answer generator.
        audit: Audit trail receiving one entry per call.
        top_k: Candidates requested from search.
        context_chunks: Leading candidates passed to the generator.

    Example:
        >>> pipeline = RAGQueryPipeline(embeddings, index, generator, audit)
        >>> response = await pipeline.ask(
        ...     "What is the small business deduction limit?",
        ...     QueryFilters(jurisdiction="CA"),
        ...     correlation_id="req-42",
        ... )
    """

    def __init__(
        self,
        embeddings: EmbeddingService,
        search_index: SearchIndex,
        generator: AnswerGenerator,
        audit: AuditTrail,
        top_k: int = 12,
        context_chunks: int = 8,
    ) -> None:
        super().__init__()

        if top_k < 1:
            raise ValueError(f"top_k ({top_k}) must be at least 1")
        if not 1 <= context_chunks <= top_k:
            raise ValueError(
                f"context_chunks ({context_chunks}) must be between 1 and top_k ({top_k})"
            )

        self.embeddings = embeddings
        self.search_index = search_index
        self.generator = generator
        self.audit = audit
        self.top_k = top_k
        self.context_chunks = context_chunks

        self.logger.info(
            "rag_pipeline_initialized",
            top_k=top_k,
            context_chunks=context_chunks,
        )

    async def ask(
        self,
        question: str,
        filters: Optional[QueryFilters] = None,
        correlation_id: Optional[str] = None,
        cancel_event: asyncio.Event | None = None,
    ) -> AskResponse:
        """
        Answer ``question`` from the indexed documents.

        Args:
            question: Non-empty question text.
            filters: Optional exact-match filters on jurisdiction, tax type
                and version.
            correlation_id: Id tying the call to its audit entry. Defaults to
                the request correlation id, else a new UUID.
            cancel_event: Optional caller signal checked between steps.

        Returns:
            The generated answer with citations and confidence.

        Raises:
            ValidationError: The question is blank. Nothing is audited.
            asyncio.CancelledError: The call was cancelled, after auditing.
            Exception: Any collaborator failure, re-raised after auditing.
        """
        if not question or not question.strip():
            raise ValidationError("Question must not be empty")

        if filters is not None and filters.is_empty():
            filters = None
        correlation_id = correlation_id or get_correlation_id() or str(uuid.uuid4())

        started = time.perf_counter()
        retrieved: Optional[list[RetrievedChunk]] = None
        response: Optional[AskResponse] = None
        error_message: Optional[str] = None

        self.logger.info(
            "question_received",
            correlation_id=correlation_id,
            question_length=len(question),
            has_filters=filters is not None,
        )

        try:
            raise_if_cancelled(cancel_event)
            query_vector = await self.embeddings.embed(question)

            raise_if_cancelled(cancel_event)
            retrieved = await self.search_index.search(question, query_vector, filters, self.top_k)

            # Search order is trusted as is; no re-ranking before truncation
            context = retrieved[:self.context_chunks]
            self.logger.debug(
                "context_selected",
                correlation_id=correlation_id,
                retrieved=len(retrieved),
                context=len(context),
            )

            raise_if_cancelled(cancel_event)
            response = await self.generator.generate(question, context)
            return response

        except asyncio.CancelledError:
            error_message = "Query cancelled"
            self.logger.warning("question_cancelled", correlation_id=correlation_id)
            raise

        except Exception as e:
            error_message = str(e) or type(e).__name__
            self.logger.error(
                "question_failed",
                correlation_id=correlation_id,
                error=error_message,
                exc_info=True,
            )
            raise

        finally:
            latency_ms = int((time.perf_counter() - started) * 1000)
            await self.audit.record(
                correlation_id=correlation_id,
                question=question,
                filters=filters,
                retrieved=retrieved,
                answer=response.answer if response is not None else None,
                latency_ms=latency_ms,
                error_message=error_message,
            )
            self.logger.info(
                "question_completed",
                correlation_id=correlation_id,
                latency_ms=latency_ms,
                success=error_message is None,
            )
