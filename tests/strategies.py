"""
Custom Hypothesis strategies for property-based testing.

This module provides strategies for generating pages, chunker settings and
search results that conform to the Tax Copilot domain models.
"""

from typing import Any

from hypothesis import strategies as st

from tax_copilot.domain.models import PageText, QueryFilters, RetrievedChunk


# =============================================================================
# Text Strategies
# =============================================================================

PAGE_ALPHABET = st.sampled_from(list("abcdefghij KLMNOP.!?\n§0123456789"))


@st.composite
def page_text(draw: Any, max_size: int = 600) -> str:
    """
    Generate page text with sentence terminators, newlines and spaces.

    May be blank, which the chunker must skip.
    """
    return draw(st.text(alphabet=PAGE_ALPHABET, min_size=0, max_size=max_size))


@st.composite
def page_list(draw: Any, max_pages: int = 12) -> list[PageText]:
    """
    Generate pages in reading order with strictly increasing page numbers.

    Gaps between page numbers mimic extractors that skip empty pages.
    """
    count = draw(st.integers(min_value=0, max_value=max_pages))
    number = draw(st.integers(min_value=1, max_value=3))
    pages = []
    for _ in range(count):
        pages.append(PageText(page_number=number, text=draw(page_text())))
        number += draw(st.integers(min_value=1, max_value=2))
    return pages


@st.composite
def chunker_limits(draw: Any) -> tuple[int, int]:
    """Generate a (chunk_size, chunk_overlap) pair with overlap < size."""
    chunk_size = draw(st.integers(min_value=10, max_value=400))
    chunk_overlap = draw(st.integers(min_value=0, max_value=chunk_size - 1))
    return chunk_size, chunk_overlap


# =============================================================================
# Retrieval Strategies
# =============================================================================

@st.composite
def retrieved_chunk(draw: Any, chunk_id: str | None = None) -> RetrievedChunk:
    """Generate a search result with a score in [0, 1]."""
    return RetrievedChunk(
        chunk_id=chunk_id or draw(st.uuids()).hex,
        document_id=draw(st.sampled_from(["doc-a", "doc-b", "doc-c"])),
        document_title=draw(st.sampled_from(["Excise Tax Act", "Income Tax Act"])),
        chunk_text=draw(st.text(min_size=1, max_size=80)),
        page_number=draw(st.integers(min_value=1, max_value=500)),
        section_heading=draw(st.none() | st.just("Section 4.2: Input tax credits")),
        score=draw(st.floats(min_value=0.0, max_value=1.0, allow_nan=False)),
    )


@st.composite
def ranked_results(draw: Any, max_size: int = 10) -> list[RetrievedChunk]:
    """Generate a ranking with unique chunk ids."""
    ids = draw(st.lists(st.uuids(), max_size=max_size, unique=True))
    return [draw(retrieved_chunk(chunk_id=str(i))) for i in ids]


def query_filters() -> st.SearchStrategy[QueryFilters]:
    """Generate filters where any field may be unset."""
    values = st.none() | st.sampled_from(["CA", "US-NY", "GST", "income", "2024"])
    return st.builds(QueryFilters, jurisdiction=values, tax_type=values, version=values)
