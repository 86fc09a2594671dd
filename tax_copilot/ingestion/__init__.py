"""
Ingestion module for Tax Copilot.

This module provides document ingestion functionality including:
- Text extraction from PDF and DOCX files
- Page-aware chunking with overlap and heading detection
- Document upload and the complete ingestion pipeline
"""

from tax_copilot.ingestion.chunker import PageChunker
from tax_copilot.ingestion.documents import DocumentService
from tax_copilot.ingestion.extractors import (
    CompositeTextExtractor,
    DocxTextExtractor,
    PdfTextExtractor,
)
from tax_copilot.ingestion.headings import HeadingDetector, RegexHeadingDetector
from tax_copilot.ingestion.pipeline import IngestionPipeline

__all__ = [
    "PageChunker",
    "DocumentService",
    "CompositeTextExtractor",
    "DocxTextExtractor",
    "PdfTextExtractor",
    "HeadingDetector",
    "RegexHeadingDetector",
    "IngestionPipeline",
]
