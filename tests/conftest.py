"""
Shared fixtures: a sample tax document, its extracted pages, and in-memory
collaborators for the ingestion and query pipelines.

Hypothesis runs the "dev" profile unless HYPOTHESIS_PROFILE names another.
"""

import os
from collections.abc import Generator
from unittest.mock import patch

import pytest
from hypothesis import settings as hypothesis_settings, Verbosity

from tax_copilot.domain.models import Document, PageText
from tests.fakes import (
    FakeEmbeddingService,
    InMemoryAuditLogRepository,
    InMemoryBlobStorage,
    InMemoryDocumentRepository,
    InMemorySearchIndex,
    make_document,
)

hypothesis_settings.register_profile(
    "ci",
    max_examples=100,
    deadline=1000,
    verbosity=Verbosity.normal,
)
hypothesis_settings.register_profile(
    "dev",
    max_examples=20,
    deadline=500,
    verbosity=Verbosity.verbose,
)
hypothesis_settings.register_profile(
    "debug",
    max_examples=10,
    deadline=None,
    verbosity=Verbosity.verbose,
)

hypothesis_settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "dev"))


@pytest.fixture
def sample_document() -> Document:
    return make_document()


@pytest.fixture
def sample_pages() -> list[PageText]:
    return [
        PageText(page_number=1, text="Section 1: Definitions\nA registrant is a person registered."),
        PageText(page_number=2, text="Every registrant shall collect tax at 5%."),
        PageText(page_number=3, text="Section 2: Returns\nA return is due monthly."),
    ]


@pytest.fixture
def document_repository(sample_document: Document) -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository([sample_document])


@pytest.fixture
def blob_storage(sample_document: Document) -> InMemoryBlobStorage:
    return InMemoryBlobStorage({sample_document.document_id: b"%PDF-1.4 ..."})


@pytest.fixture
def fake_embeddings() -> FakeEmbeddingService:
    return FakeEmbeddingService()


@pytest.fixture
def search_index() -> InMemorySearchIndex:
    return InMemorySearchIndex()


@pytest.fixture
def audit_repository() -> InMemoryAuditLogRepository:
    return InMemoryAuditLogRepository()


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Environment a deployed instance would see; nested sections use their own prefixes."""
    env_vars = {
        "ENVIRONMENT": "development",
        "OPENAI_API_KEY": "sk-test-key",
        "CHAT_MODEL": "gpt-4o-mini",
        "CHROMA_HOST": "localhost",
        "CHROMA_PORT": "8000",
        "LOG_LEVEL": "DEBUG",
    }
    with patch.dict(os.environ, env_vars, clear=False):
        yield env_vars


@pytest.fixture(autouse=True)
def reset_correlation_id() -> Generator[None, None, None]:
    """No correlation id leaks from one test into the next."""
    from tax_copilot.utils.logging import clear_correlation_id

    clear_correlation_id()
    yield
    clear_correlation_id()


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "property: Hypothesis property tests")
