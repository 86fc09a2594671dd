"""
Hybrid ranking combining vector similarity with BM25 keyword search.

The two rankings are merged with weighted Reciprocal Rank Fusion (RRF), which
needs no score normalization between the two methods.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from tax_copilot.domain.models import RetrievedChunk
from tax_copilot.utils.logging import LoggerMixin


@dataclass
class HybridSearchConfig:
    """
    Configuration for hybrid search.

    Attributes:
        semantic_weight: Weight for the vector ranking (0-1).
        keyword_weight: Weight for the BM25 ranking (0-1).
        candidate_multiplier: Vector candidates fetched per requested result.
        rrf_k: RRF constant (higher = smoother ranking).
    """
    semantic_weight: float = 0.5
    keyword_weight: float = 0.5
    candidate_multiplier: int = 3
    rrf_k: int = 60


class HybridRanker(LoggerMixin):
    """
    Fuses vector and keyword rankings of the same chunk pool.

    Example:
        >>> ranker = HybridRanker(HybridSearchConfig(semantic_weight=0.7, keyword_weight=0.3))
        >>> fused = ranker.fuse(vector_hits, bm25_hits, top_k=12)
    """

    def __init__(self, config: HybridSearchConfig | None = None) -> None:
        super().__init__()
        self.config = config or HybridSearchConfig()

    def fuse(
        self,
        semantic_results: list[tuple[RetrievedChunk, float]],
        keyword_results: list[tuple[RetrievedChunk, float]],
        top_k: int,
    ) -> list[RetrievedChunk]:
        """
        Combine rankings with RRF: ``score = sum(weight / (rrf_k + rank))``.

        Chunks are identified by ``chunk_id``. Ties keep the order in which a
        chunk was first seen, vector results first.

        Returns:
            Up to ``top_k`` chunks, best first, each carrying its fused score.
        """
        k = self.config.rrf_k
        fused: dict[str, tuple[RetrievedChunk, float]] = {}

        for weight, results in (
            (self.config.semantic_weight, semantic_results),
            (self.config.keyword_weight, keyword_results),
        ):
            if weight == 0.0:
                continue
            for rank, (chunk, _) in enumerate(results, start=1):
                contribution = weight * (1.0 / (k + rank))
                if chunk.chunk_id in fused:
                    existing, score = fused[chunk.chunk_id]
                    fused[chunk.chunk_id] = (existing, score + contribution)
                else:
                    fused[chunk.chunk_id] = (chunk, contribution)

        ranked = sorted(fused.values(), key=lambda pair: pair[1], reverse=True)[:top_k]

        self.logger.debug(
            "RRF fusion completed",
            semantic_count=len(semantic_results),
            keyword_count=len(keyword_results),
            unique_chunks=len(fused),
            top_scores=[round(score, 4) for _, score in ranked[:5]],
        )

        return [replace(chunk, score=score) for chunk, score in ranked]
