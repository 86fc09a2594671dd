"""
Text extractors for tax documents.

Supported formats:
- PDF (.pdf): PyMuPDF, one PageText per physical page
- Word (.docx): python-docx, pages split at explicit page breaks or estimated
  every 3000 characters

``CompositeTextExtractor`` routes to the right extractor by file extension.
"""

from __future__ import annotations

import asyncio
import io
import re
from pathlib import PurePath
from typing import Dict, List

import fitz  # PyMuPDF
from docx import Document as DocxDocument
from docx.table import Table
from docx.text.paragraph import Paragraph

from tax_copilot.core.interfaces import TextExtractor
from tax_copilot.domain.models import PageText
from tax_copilot.utils.exceptions import ExtractionError, UnsupportedFormatError
from tax_copilot.utils.logging import LoggerMixin

_WHITESPACE = re.compile(r"\s+")

DOCX_CHARS_PER_PAGE = 3000


def file_extension(file_name: str) -> str:
    """Lower-cased extension including the dot, or an empty string."""
    return PurePath(file_name).suffix.lower()


class PdfTextExtractor(TextExtractor, LoggerMixin):
    """Extract per-page text from PDF bytes using PyMuPDF."""

    SUPPORTED_FORMATS = {".pdf"}

    def supports_file_type(self, file_name: str) -> bool:
        return file_extension(file_name) in self.SUPPORTED_FORMATS

    async def extract(self, data: bytes, file_name: str) -> List[PageText]:
        return await asyncio.to_thread(self._extract, data, file_name)

    def _extract(self, data: bytes, file_name: str) -> List[PageText]:
        pages: List[PageText] = []
        try:
            with fitz.open(stream=data, filetype="pdf") as pdf:
                total_pages = len(pdf)
                for index in range(total_pages):
                    text = _WHITESPACE.sub(" ", pdf[index].get_text()).strip()
                    if not text:
                        self.logger.debug("Skipping empty page", file_name=file_name, page=index + 1)
                        continue
                    pages.append(PageText(page_number=index + 1, text=text))
        except Exception as e:
            self.logger.error("Failed to extract PDF", file_name=file_name, error=str(e))
            raise ExtractionError(
                f"Failed to extract text from PDF: {file_name}",
                details={"file_name": file_name},
                cause=e,
            ) from e

        self.logger.info(
            "PDF extracted",
            file_name=file_name,
            extracted_pages=len(pages),
            total_pages=total_pages,
        )
        return pages


class DocxTextExtractor(TextExtractor, LoggerMixin):
    """
    Extract text from Word documents using python-docx.

    Word files carry no physical pages, so a new page starts at every explicit
    page break and whenever more than ``chars_per_page`` paragraph characters
    have accumulated. Tables are rendered one row per line, cells joined by
    `` | ``.
    """

    SUPPORTED_FORMATS = {".docx"}

    def __init__(self, chars_per_page: int = DOCX_CHARS_PER_PAGE) -> None:
        self.chars_per_page = chars_per_page

    def supports_file_type(self, file_name: str) -> bool:
        return file_extension(file_name) in self.SUPPORTED_FORMATS

    async def extract(self, data: bytes, file_name: str) -> List[PageText]:
        return await asyncio.to_thread(self._extract, data, file_name)

    def _extract(self, data: bytes, file_name: str) -> List[PageText]:
        try:
            document = DocxDocument(io.BytesIO(data))
        except Exception as e:
            self.logger.error("Failed to open DOCX", file_name=file_name, error=str(e))
            raise ExtractionError(
                f"Failed to extract text from DOCX: {file_name}",
                details={"file_name": file_name},
                cause=e,
            ) from e

        pages: List[PageText] = []
        lines: List[str] = []
        page_number = 1
        chars_since_break = 0

        def flush() -> None:
            nonlocal page_number, chars_since_break
            text = "\n".join(lines).strip()
            if text:
                pages.append(PageText(page_number=page_number, text=text))
            lines.clear()
            page_number += 1
            chars_since_break = 0

        for element in document.element.body.iterchildren():
            tag = element.tag.rsplit("}", 1)[-1]

            if tag == "p":
                if lines and element.xpath('.//w:br[@w:type="page"]'):
                    flush()

                text = Paragraph(element, document).text
                if text.strip():
                    lines.append(text)
                    chars_since_break += len(text)
                    if chars_since_break > self.chars_per_page:
                        flush()

            elif tag == "tbl":
                table_text = self._table_text(Table(element, document))
                if table_text.strip():
                    lines.append(table_text)
                    chars_since_break += len(table_text)

        if lines:
            flush()

        self.logger.info("DOCX extracted", file_name=file_name, estimated_pages=len(pages))
        return pages

    @staticmethod
    def _table_text(table: Table) -> str:
        rows = []
        for row in table.rows:
            rows.append(" | ".join(cell.text.strip() for cell in row.cells))
        return "\n".join(rows)


class CompositeTextExtractor(TextExtractor, LoggerMixin):
    """
    Routes extraction to a format-specific extractor by file extension.

    Example:
        >>> extractor = CompositeTextExtractor()
        >>> extractor.supports_file_type("Income-Tax-Act.PDF")
        True
        >>> extractor.supports_file_type("rates.csv")
        False
    """

    def __init__(self, extractors: Dict[str, TextExtractor] | None = None) -> None:
        if extractors is None:
            pdf = PdfTextExtractor()
            docx = DocxTextExtractor()
            extractors = {".pdf": pdf, ".docx": docx}
        self.extractors = {ext.lower(): extractor for ext, extractor in extractors.items()}

        self.logger.info(
            "CompositeTextExtractor initialized",
            supported_formats=sorted(self.extractors),
        )

    @property
    def supported_formats(self) -> List[str]:
        return sorted(self.extractors)

    def supports_file_type(self, file_name: str) -> bool:
        return file_extension(file_name) in self.extractors

    async def extract(self, data: bytes, file_name: str) -> List[PageText]:
        extension = file_extension(file_name)
        extractor = self.extractors.get(extension)
        if extractor is None:
            raise UnsupportedFormatError(file_name, extension)

        self.logger.info("Extracting text", file_name=file_name, extension=extension)
        return await extractor.extract(data, file_name)
