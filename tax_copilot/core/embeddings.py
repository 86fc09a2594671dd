"""
Embeddings for Tax Copilot.

``EmbeddingsFactory`` builds the LangChain OpenAI embeddings client and
``LangChainEmbeddingService`` adapts any LangChain ``Embeddings`` to the
order-preserving, batched service the pipelines consume.
"""

from typing import Any, Sequence

from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings

from tax_copilot.config.settings import EmbeddingSettings
from tax_copilot.core.interfaces import EmbeddingService
from tax_copilot.utils.exceptions import ConfigurationError, EmbeddingError
from tax_copilot.utils.logging import LoggerMixin, get_logger

logger = get_logger(__name__)


class EmbeddingsFactory(LoggerMixin):
    """Factory class for creating embedding model instances."""

    @staticmethod
    def create(
        settings: EmbeddingSettings,
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> Embeddings:
        """
        Create an OpenAI embeddings instance from settings.

        Args:
            settings: Embedding configuration settings.
            api_key: OpenAI API key.
            base_url: Optional OpenAI-compatible endpoint.

        Returns:
            A LangChain Embeddings instance.

        Raises:
            ConfigurationError: If the API key is missing.
        """
        if not api_key:
            raise ConfigurationError("OpenAI API key is required for embeddings")

        logger.info(
            "creating_openai_embeddings",
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
        )

        kwargs: dict[str, Any] = {}
        if base_url:
            kwargs["base_url"] = base_url

        return OpenAIEmbeddings(
            api_key=api_key,
            model=settings.embedding_model,
            dimensions=settings.embedding_dimensions,
            **kwargs,
        )


class LangChainEmbeddingService(EmbeddingService, LoggerMixin):
    """
    Embedding service backed by a LangChain ``Embeddings`` model.

    Texts are sent in batches of ``batch_size``. Blank texts are never sent to
    the provider; they get a zero vector of ``dimensions`` length.

    Example:
        >>> service = LangChainEmbeddingService(embeddings, dimensions=1536)
        >>> vectors = await service.embed_batch(["Section 1", "Section 2"])
        >>> len(vectors)
        2
    """

    def __init__(
        self,
        embeddings: Embeddings,
        dimensions: int = 1536,
        batch_size: int = 16,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size ({batch_size}) must be at least 1")

        self.embeddings = embeddings
        self.dimensions = dimensions
        self.batch_size = batch_size

        self.logger.info(
            "embedding_service_initialized",
            dimensions=dimensions,
            batch_size=batch_size,
        )

    def _zero_vector(self) -> list[float]:
        return [0.0] * self.dimensions

    async def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            return self._zero_vector()

        try:
            return await self.embeddings.aembed_query(text)
        except Exception as e:
            self.logger.error("embedding_failed", error=str(e), exc_info=True)
            raise EmbeddingError("Failed to generate embedding", cause=e) from e

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed texts in order, one vector per text.

        Raises:
            EmbeddingError: If a provider call fails or returns the wrong count.
        """
        if not texts:
            return []

        results: list[list[float]] = []
        total_batches = (len(texts) + self.batch_size - 1) // self.batch_size

        for batch_index, offset in enumerate(range(0, len(texts), self.batch_size)):
            batch = list(texts[offset:offset + self.batch_size])
            to_send = [i for i, text in enumerate(batch) if text and text.strip()]
            vectors: list[list[float]] = [self._zero_vector() for _ in batch]

            if to_send:
                try:
                    embedded = await self.embeddings.aembed_documents([batch[i] for i in to_send])
                except Exception as e:
                    self.logger.error(
                        "embedding_batch_failed",
                        batch_index=batch_index,
                        error=str(e),
                        exc_info=True,
                    )
                    raise EmbeddingError(
                        "Failed to generate embeddings",
                        details={"batch_index": batch_index},
                        cause=e,
                    ) from e

                if len(embedded) != len(to_send):
                    raise EmbeddingError(
                        "Embedding provider returned a mismatched number of vectors",
                        details={"expected": len(to_send), "received": len(embedded)},
                    )

                for i, vector in zip(to_send, embedded):
                    vectors[i] = list(vector)

            results.extend(vectors)
            self.logger.debug(
                "embedding_batch_completed",
                batch=batch_index + 1,
                total_batches=total_batches,
            )

        return results

    async def is_available(self) -> bool:
        """Embed a short text; False if the provider errors."""
        try:
            vector = await self.embed("test")
            return len(vector) > 0
        except Exception as e:
            self.logger.error("embedding_service_unavailable", error=str(e))
            return False


def get_embedding_service(settings=None) -> LangChainEmbeddingService:
    """
    Build the embedding service from application settings.

    Args:
        settings: Optional full ``Settings``. If None, loads from environment.
    """
    if settings is None:
        from tax_copilot.config.settings import get_settings

        settings = get_settings()

    embeddings = EmbeddingsFactory.create(
        settings.embedding,
        api_key=settings.llm.openai_api_key.get_secret_value(),
        base_url=settings.llm.openai_base_url,
    )
    return LangChainEmbeddingService(
        embeddings,
        dimensions=settings.embedding.embedding_dimensions,
        batch_size=settings.embedding.embedding_batch_size,
    )
