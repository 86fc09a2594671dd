"""
Unit tests for BM25 keyword retrieval and hybrid rank fusion.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from tax_copilot.retrieval.bm25 import BM25Retriever, tokenize
from tax_copilot.retrieval.hybrid import HybridRanker, HybridSearchConfig
from tests.fakes import make_retrieved
from tests.strategies import ranked_results


def chunk(chunk_id: str, text: str):
    c = make_retrieved(chunk_id, 0.0)
    c.chunk_text = text
    return c


@pytest.fixture
def corpus():
    return [
        chunk("gst", "Every registrant shall collect GST at five percent."),
        chunk("cca", "Capital cost allowance applies to depreciable property."),
        chunk("ret", "A return is due monthly for large registrants."),
        chunk("sec", "See § 12.3 for the definition of a supply."),
    ]


class TestTokenize:
    def test_lowercases_and_strips_punctuation(self):
        assert tokenize("GST, HST; and QST!") == ["gst", "hst", "and", "qst"]

    def test_keeps_section_sign(self):
        assert "§" in tokenize("See § 12.3")

    def test_empty(self):
        assert tokenize("  ...  ") == []


class TestBM25Retriever:
    """Test suite for BM25Retriever."""

    def test_exact_term_ranks_first(self, corpus):
        retriever = BM25Retriever(corpus, k=4)

        results = retriever.retrieve("capital cost allowance")

        assert results[0][0].chunk_id == "cca"
        assert results[0][1] > 0

    def test_zero_scores_left_out(self, corpus):
        retriever = BM25Retriever(corpus, k=4)

        results = retriever.retrieve("depreciable")

        assert [c.chunk_id for c, _ in results] == ["cca"]

    def test_respects_k(self, corpus):
        retriever = BM25Retriever(corpus, k=1)

        assert len(retriever.retrieve("registrant return monthly gst")) <= 1

    def test_empty_index(self):
        assert BM25Retriever([], k=5).retrieve("anything") == []

    def test_query_without_tokens(self, corpus):
        assert BM25Retriever(corpus).retrieve("?!") == []

    def test_add_chunks(self, corpus):
        retriever = BM25Retriever(corpus[:2])
        retriever.add_chunks(corpus[2:])

        assert retriever.chunk_count == 4


class TestHybridRanker:
    """Test suite for weighted Reciprocal Rank Fusion."""

    def test_chunk_in_both_lists_wins(self):
        a, b, c = make_retrieved("a", 0.9), make_retrieved("b", 0.8), make_retrieved("c", 0.1)
        ranker = HybridRanker()

        fused = ranker.fuse([(a, 0.9), (b, 0.8)], [(b, 3.0), (c, 1.0)], top_k=3)

        assert [r.chunk_id for r in fused] == ["b", "a", "c"]

    def test_fused_score_replaces_input_score(self):
        a = make_retrieved("a", 0.9)
        ranker = HybridRanker(HybridSearchConfig(semantic_weight=1.0, keyword_weight=0.0, rrf_k=60))

        fused = ranker.fuse([(a, 0.9)], [], top_k=1)

        assert fused[0].score == pytest.approx(1.0 / 61)
        assert a.score == 0.9

    def test_zero_weight_ignores_list(self):
        a, b = make_retrieved("a", 0.9), make_retrieved("b", 0.1)
        ranker = HybridRanker(HybridSearchConfig(semantic_weight=0.0, keyword_weight=1.0))

        fused = ranker.fuse([(a, 0.9)], [(b, 2.0)], top_k=5)

        assert [r.chunk_id for r in fused] == ["b"]

    def test_ties_keep_first_seen_order(self):
        a, b = make_retrieved("a", 0.9), make_retrieved("b", 0.1)
        ranker = HybridRanker()

        fused = ranker.fuse([(a, 0.9)], [(b, 2.0)], top_k=5)

        assert [r.chunk_id for r in fused] == ["a", "b"]

    def test_top_k_truncates(self):
        results = [(make_retrieved(str(i), 0.5), 0.5) for i in range(10)]

        assert len(HybridRanker().fuse(results, [], top_k=3)) == 3

    @pytest.mark.property
    @given(
        semantic=ranked_results(),
        keyword=ranked_results(),
        top_k=st.integers(min_value=1, max_value=15),
    )
    def test_fusion_properties(self, semantic, keyword, top_k):
        fused = HybridRanker().fuse(
            [(c, c.score) for c in semantic], [(c, c.score) for c in keyword], top_k
        )

        ids = [r.chunk_id for r in fused]
        assert len(ids) == len(set(ids))
        assert len(fused) <= top_k
        assert set(ids) <= {c.chunk_id for c in semantic + keyword}
        scores = [r.score for r in fused]
        assert scores == sorted(scores, reverse=True)
