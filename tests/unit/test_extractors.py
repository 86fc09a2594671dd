"""
Unit tests for PDF and Word text extraction.

Fixture files are generated in memory with PyMuPDF and python-docx.
"""

import io
from unittest.mock import AsyncMock, MagicMock

import fitz
import pytest
from docx import Document as DocxDocument

from tax_copilot.domain.models import PageText
from tax_copilot.ingestion.extractors import (
    CompositeTextExtractor,
    DocxTextExtractor,
    PdfTextExtractor,
    file_extension,
)
from tax_copilot.utils.exceptions import ExtractionError, UnsupportedFormatError


def build_pdf(pages: list[str]) -> bytes:
    pdf = fitz.open()
    for text in pages:
        page = pdf.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = pdf.tobytes()
    pdf.close()
    return data


def build_docx(build) -> bytes:
    document = DocxDocument()
    build(document)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class TestFileExtension:
    @pytest.mark.parametrize(
        "name,expected",
        [("act.PDF", ".pdf"), ("a.b.docx", ".docx"), ("README", ""), ("dir/x.Docx", ".docx")],
    )
    def test_extension(self, name, expected):
        assert file_extension(name) == expected


class TestPdfTextExtractor:
    @pytest.mark.asyncio
    async def test_one_page_per_physical_page(self):
        data = build_pdf(["Section 1: Definitions", "Tax is due monthly"])

        pages = await PdfTextExtractor().extract(data, "act.pdf")

        assert [p.page_number for p in pages] == [1, 2]
        assert "Definitions" in pages[0].text
        assert "monthly" in pages[1].text

    @pytest.mark.asyncio
    async def test_empty_pages_skipped_numbering_kept(self):
        data = build_pdf(["First page", "", "Third page"])

        pages = await PdfTextExtractor().extract(data, "act.pdf")

        assert [p.page_number for p in pages] == [1, 3]

    @pytest.mark.asyncio
    async def test_corrupt_pdf(self):
        with pytest.raises(ExtractionError):
            await PdfTextExtractor().extract(b"not a pdf", "act.pdf")

    def test_supports(self):
        extractor = PdfTextExtractor()

        assert extractor.supports_file_type("ACT.PDF")
        assert not extractor.supports_file_type("act.docx")


class TestDocxTextExtractor:
    @pytest.mark.asyncio
    async def test_paragraphs_on_one_page(self):
        def build(doc):
            doc.add_paragraph("Section 1: Definitions")
            doc.add_paragraph("A registrant is a person registered.")

        pages = await DocxTextExtractor().extract(build_docx(build), "act.docx")

        assert pages == [
            PageText(
                page_number=1,
                text="Section 1: Definitions\nA registrant is a person registered.",
            )
        ]

    @pytest.mark.asyncio
    async def test_explicit_page_break_starts_new_page(self):
        def build(doc):
            doc.add_paragraph("Page one text")
            doc.add_page_break()
            doc.add_paragraph("Page two text")

        pages = await DocxTextExtractor().extract(build_docx(build), "act.docx")

        assert [p.page_number for p in pages] == [1, 2]
        assert pages[1].text == "Page two text"

    @pytest.mark.asyncio
    async def test_long_text_split_into_estimated_pages(self):
        def build(doc):
            for _ in range(4):
                doc.add_paragraph("x" * 40)

        pages = await DocxTextExtractor(chars_per_page=50).extract(build_docx(build), "act.docx")

        assert [p.page_number for p in pages] == [1, 2]

    @pytest.mark.asyncio
    async def test_tables_rendered_row_per_line(self):
        def build(doc):
            table = doc.add_table(rows=2, cols=2)
            table.cell(0, 0).text = "Province"
            table.cell(0, 1).text = "Rate"
            table.cell(1, 0).text = "ON"
            table.cell(1, 1).text = "13%"

        pages = await DocxTextExtractor().extract(build_docx(build), "rates.docx")

        assert pages[0].text == "Province | Rate\nON | 13%"

    @pytest.mark.asyncio
    async def test_corrupt_docx(self):
        with pytest.raises(ExtractionError):
            await DocxTextExtractor().extract(b"not a zip", "act.docx")


class TestCompositeTextExtractor:
    def test_default_formats(self):
        extractor = CompositeTextExtractor()

        assert extractor.supported_formats == [".docx", ".pdf"]
        assert extractor.supports_file_type("Act.PDF")
        assert not extractor.supports_file_type("rates.csv")

    @pytest.mark.asyncio
    async def test_routes_by_extension(self):
        pdf = MagicMock()
        pdf.extract = AsyncMock(return_value=[PageText(1, "pdf text")])
        docx = MagicMock()
        docx.extract = AsyncMock(return_value=[PageText(1, "docx text")])
        extractor = CompositeTextExtractor({".PDF": pdf, ".docx": docx})

        pages = await extractor.extract(b"data", "act.pdf")

        assert pages[0].text == "pdf text"
        pdf.extract.assert_awaited_once_with(b"data", "act.pdf")
        docx.extract.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsupported_extension(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            await CompositeTextExtractor().extract(b"a,b", "rates.csv")

        assert exc_info.value.extension == ".csv"
