"""
BM25 keyword scoring over chunk candidates.

Tax questions often hinge on exact terms ("capital cost allowance",
"section 12.3"), which vector similarity alone can rank poorly. BM25 gives the
hybrid search a keyword-driven ranking of the same candidate set.
"""

from __future__ import annotations

import re

from rank_bm25 import BM25Okapi

from tax_copilot.domain.models import RetrievedChunk
from tax_copilot.utils.logging import LoggerMixin

_NON_WORD = re.compile(r"[^\w\s§]")


def tokenize(text: str) -> list[str]:
    """Lowercase, drop punctuation (keeping ``§``), split on whitespace."""
    text = _NON_WORD.sub(" ", text.lower())
    return [token for token in text.split() if token]


class BM25Retriever(LoggerMixin):
    """
    BM25 retriever over a fixed set of chunks.

    Args:
        chunks: Chunks to index.
        k: Number of chunks to return.

    Example:
        >>> retriever = BM25Retriever(candidates, k=12)
        >>> ranked = retriever.retrieve("capital gains inclusion rate")
    """

    def __init__(self, chunks: list[RetrievedChunk] | None = None, k: int = 12) -> None:
        super().__init__()

        self.k = k
        self._chunks: list[RetrievedChunk] = []
        self._bm25: BM25Okapi | None = None

        if chunks:
            self.add_chunks(chunks)

    def add_chunks(self, chunks: list[RetrievedChunk]) -> None:
        """Add chunks and rebuild the index."""
        self._chunks.extend(chunks)
        corpus = [tokenize(chunk.chunk_text) for chunk in self._chunks]
        if corpus:
            self._bm25 = BM25Okapi(corpus)

        self.logger.debug("BM25 index updated", total_chunks=len(self._chunks))

    def retrieve(self, query: str) -> list[tuple[RetrievedChunk, float]]:
        """
        Rank indexed chunks against ``query``.

        Returns:
            Up to ``k`` (chunk, score) pairs ordered by BM25 score. Chunks with
            a zero score are left out.
        """
        if not self._bm25 or not self._chunks:
            return []

        query_tokens = tokenize(query)
        if not query_tokens:
            self.logger.warning("Query tokenized to empty, returning no results")
            return []

        scores = self._bm25.get_scores(query_tokens)
        ranked = sorted(zip(self._chunks, scores), key=lambda pair: pair[1], reverse=True)
        results = [(chunk, float(score)) for chunk, score in ranked if score > 0][:self.k]

        self.logger.debug(
            "BM25 retrieval completed",
            num_results=len(results),
            top_score=results[0][1] if results else 0.0,
        )
        return results

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)
