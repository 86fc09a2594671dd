"""
Page-aware document chunker.

Splits per-page extracted text into overlapping, size-bounded chunks that
remember which pages they came from and the most recent section heading.
Pages are accumulated until the next one would push the buffer past the
chunk size; pages that are too large on their own are split at sentence,
line or word boundaries.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from datetime import datetime
from typing import List, Optional, Sequence

from tax_copilot.domain.models import PageText, TextChunk
from tax_copilot.ingestion.headings import HeadingDetector, RegexHeadingDetector
from tax_copilot.utils.cancellation import raise_if_cancelled
from tax_copilot.utils.logging import LoggerMixin

_SENTENCE_END = re.compile(r"[.!?]")
_SENTENCE_CHARS = ".!?"

# A split slice always advances the cursor by at least this many characters
MIN_SPLIT_PROGRESS = 100


class PageChunker(LoggerMixin):
    """
    Chunker preserving page ranges and section headings.

    Args:
        chunk_size: Target maximum characters per chunk.
        chunk_overlap: Characters carried from the end of one chunk into the next.
        heading_detector: Callable returning the heading found in a page, or None.

    Example:
        >>> chunker = PageChunker(chunk_size=3500, chunk_overlap=400)
        >>> chunks = chunker.chunk(pages, "doc-1", "Income Tax Act", "CA", "Income", "2024")
        >>> chunks[0].page_number_start
        1
    """

    def __init__(
        self,
        chunk_size: int = 3500,
        chunk_overlap: int = 400,
        heading_detector: HeadingDetector | None = None,
    ) -> None:
        super().__init__()

        if chunk_size <= 0:
            raise ValueError(f"chunk_size ({chunk_size}) must be positive")
        if chunk_overlap < 0:
            raise ValueError(f"chunk_overlap ({chunk_overlap}) must not be negative")
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be less than chunk_size ({chunk_size})"
            )

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.heading_detector = heading_detector or RegexHeadingDetector()

        self.logger.info(
            "PageChunker initialized",
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
        )

    def chunk(
        self,
        pages: Sequence[PageText],
        document_id: str,
        document_title: str,
        jurisdiction: str,
        tax_type: str,
        version: str,
        effective_date: Optional[datetime] = None,
        cancel_event: asyncio.Event | None = None,
    ) -> List[TextChunk]:
        """
        Chunk a document's pages.

        Args:
            pages: Pages in reading order.
            document_id: Owning document.
            document_title: Title copied onto every chunk.
            jurisdiction: Jurisdiction copied onto every chunk.
            tax_type: Tax type copied onto every chunk.
            version: Document version copied onto every chunk.
            effective_date: Optional effective date copied onto every chunk.
            cancel_event: Checked once per page; when set the run aborts.

        Returns:
            Ordered chunks. Empty when ``pages`` is empty.

        Raises:
            asyncio.CancelledError: If ``cancel_event`` is set during the run.
        """
        chunks: List[TextChunk] = []

        if not pages:
            self.logger.warning("No pages to chunk", document_id=document_id)
            return chunks

        def emit(text: str, start: int, end: int, heading: Optional[str]) -> None:
            text = text.strip()
            if not text:
                return
            chunks.append(
                TextChunk(
                    chunk_id=str(uuid.uuid4()),
                    document_id=document_id,
                    document_title=document_title,
                    chunk_text=text,
                    page_number_start=start,
                    page_number_end=end,
                    section_heading=heading,
                    jurisdiction=jurisdiction,
                    tax_type=tax_type,
                    version=version,
                    effective_date=effective_date,
                )
            )

        buffer = ""
        # True while the buffer holds nothing but text already emitted in the previous chunk
        overlap_only = False
        range_start = pages[0].page_number
        range_end = range_start
        heading: Optional[str] = None

        for page in pages:
            raise_if_cancelled(cancel_event)

            page_text = page.text.strip()
            if not page_text:
                continue

            detected = self.heading_detector(page_text)
            if detected:
                heading = detected

            if buffer and len(buffer) + len(page_text) > self.chunk_size:
                emit(buffer, range_start, range_end, heading)
                seed = self.extract_overlap(buffer)
                buffer = seed if len(seed) < len(buffer) else ""
                overlap_only = bool(buffer)
                range_start = page.page_number

            if len(page_text) > self.chunk_size:
                if buffer and not overlap_only:
                    emit(buffer, range_start, range_end, heading)
                buffer = ""
                overlap_only = False

                for piece in self.split_large_text(page_text):
                    emit(piece, page.page_number, page.page_number, heading)

                range_start = page.page_number + 1
            else:
                if buffer:
                    buffer += "\n\n"
                buffer += page_text
                overlap_only = False
                range_end = page.page_number

        if buffer and not overlap_only:
            emit(buffer, range_start, range_end, heading)

        self.logger.info(
            "Document chunked",
            document_id=document_id,
            num_chunks=len(chunks),
            num_pages=len(pages),
        )

        return chunks

    def extract_overlap(self, text: str) -> str:
        """
        Return the tail of ``text`` to carry into the next chunk.

        Takes the last ``chunk_overlap`` characters and, when possible, starts
        after the first sentence terminator (leaving more than 10 characters)
        or else after the first paragraph break.
        """
        if len(text) <= self.chunk_overlap:
            return text

        tail = text[len(text) - self.chunk_overlap:]

        sentence = _SENTENCE_END.search(tail)
        if sentence is not None:
            idx = sentence.start()
            if 0 < idx < len(tail) - 10:
                return tail[idx + 1:].lstrip()

        paragraph = tail.find("\n\n")
        if paragraph > 0:
            return tail[paragraph + 2:]

        return tail

    def split_large_text(self, text: str) -> List[str]:
        """Split a single oversized page into overlapping pieces."""
        pieces: List[str] = []
        length_total = len(text)
        pos = 0

        while pos < length_total:
            remaining = length_total - pos
            length = min(self.chunk_size, remaining)

            if length < remaining:
                break_point = self.find_break_point(text, pos, pos + length)
                if break_point > pos:
                    length = break_point - pos

            pieces.append(text[pos:pos + length])

            start = pos
            pos += length
            if pos < length_total:
                pos = max(pos - self.chunk_overlap, start + min(length, MIN_SPLIT_PROGRESS))

        return pieces

    @staticmethod
    def find_break_point(text: str, start: int, end: int) -> int:
        """
        Find where to cut ``text[start:end]``.

        Looks backward for a sentence terminator in the back half, then a
        newline in the back half, then a space in the back quarter. Falls back
        to ``end``.
        """
        half = start + (end - start) // 2
        for i in range(end - 1, half - 1, -1):
            if text[i] in _SENTENCE_CHARS:
                return i + 1

        for i in range(end - 1, half - 1, -1):
            if text[i] == "\n":
                return i + 1

        quarter = start + (end - start) * 3 // 4
        for i in range(end - 1, quarter - 1, -1):
            if text[i] == " ":
                return i + 1

        return end
