"""
Retrieval module for Tax Copilot.

This module provides the keyword half of hybrid search and the rank fusion
that merges it with vector similarity:
- BM25 keyword scoring over candidate chunks
- Weighted Reciprocal Rank Fusion
"""

from tax_copilot.retrieval.bm25 import BM25Retriever, tokenize
from tax_copilot.retrieval.hybrid import HybridRanker, HybridSearchConfig

__all__ = [
    "BM25Retriever",
    "tokenize",
    "HybridRanker",
    "HybridSearchConfig",
]
