"""
Tests for configuration settings module.

Uses pytest for unit tests and Hypothesis for property-based testing.
"""

import os
from unittest.mock import patch

import pytest
from hypothesis import given, settings as hypothesis_settings
from hypothesis import strategies as st

from tax_copilot.config.settings import (
    APISettings,
    ChromaSettings,
    EmbeddingSettings,
    LLMSettings,
    RagSettings,
    Settings,
    get_settings,
    reload_settings,
)


class TestLLMSettings:
    """Tests for chat model settings."""

    def test_default_values(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = LLMSettings()

        assert settings.chat_model == "gpt-4o"
        assert settings.llm_temperature == 0.1
        assert settings.openai_api_key.get_secret_value() == ""

    def test_api_key_is_secret(self) -> None:
        settings = LLMSettings(openai_api_key="sk-test")

        assert "sk-test" not in repr(settings)
        assert settings.openai_api_key.get_secret_value() == "sk-test"

    def test_blank_model_rejected(self) -> None:
        with pytest.raises(ValueError):
            LLMSettings(chat_model="   ")

    @given(st.floats(min_value=0.0, max_value=2.0, allow_nan=False))
    @hypothesis_settings(max_examples=50)
    def test_temperature_property_valid_range(self, temp: float) -> None:
        """Property: Any temperature in [0.0, 2.0] should be valid."""
        settings = LLMSettings(llm_temperature=temp)
        assert 0.0 <= settings.llm_temperature <= 2.0

    def test_temperature_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            LLMSettings(llm_temperature=2.1)


class TestRagSettings:
    """Tests for chunking and retrieval settings."""

    def test_default_values(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = RagSettings()

        assert settings.chunk_size_chars == 3500
        assert settings.chunk_overlap_chars == 400
        assert settings.top_k == 12
        assert settings.context_chunks == 8
        assert settings.max_file_size_mb == 50

    def test_overlap_must_be_less_than_size(self) -> None:
        with pytest.raises(ValueError, match="chunk_overlap_chars"):
            RagSettings(chunk_size_chars=100, chunk_overlap_chars=100)

    def test_context_chunks_within_top_k(self) -> None:
        with pytest.raises(ValueError, match="context_chunks"):
            RagSettings(top_k=4, context_chunks=5)

    @given(
        st.integers(min_value=10, max_value=5000).flatmap(
            lambda size: st.tuples(st.just(size), st.integers(min_value=0, max_value=size - 1))
        )
    )
    @hypothesis_settings(max_examples=30)
    def test_overlap_below_size_accepted(self, size_and_overlap) -> None:
        size, overlap = size_and_overlap
        settings = RagSettings(chunk_size_chars=size, chunk_overlap_chars=min(overlap, 10000))
        assert settings.chunk_overlap_chars < settings.chunk_size_chars

    def test_environment_prefix(self) -> None:
        with patch.dict(os.environ, {"RAG_TOP_K": "20", "RAG_CONTEXT_CHUNKS": "10"}):
            settings = RagSettings()

        assert settings.top_k == 20
        assert settings.context_chunks == 10


class TestSectionSettings:
    def test_embedding_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = EmbeddingSettings(_env_file=None)

        assert settings.embedding_model == "text-embedding-3-small"
        assert settings.embedding_dimensions == 1536

    def test_chroma_url(self) -> None:
        settings = ChromaSettings(host="chroma", port=9000)

        assert settings.url == "http://chroma:9000"

    def test_cors_origins_list(self) -> None:
        settings = APISettings(CORS_ORIGINS="http://a.test, http://b.test")

        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]


class TestSettings:
    def test_nested_sections_from_environment(self, mock_env_vars) -> None:
        settings = Settings(_env_file=None)

        assert settings.llm.openai_api_key.get_secret_value() == "sk-test-key"
        assert settings.llm.chat_model == "gpt-4o-mini"
        assert settings.chroma.host == "localhost"
        assert settings.logging.log_level == "DEBUG"
        assert settings.is_debug is True

    def test_production_requires_api_key(self) -> None:
        with patch.dict(os.environ, {"ENVIRONMENT": "production"}, clear=True):
            with pytest.raises(ValueError, match="OPENAI_API_KEY"):
                Settings(_env_file=None)

    def test_production_with_api_key(self) -> None:
        env = {"ENVIRONMENT": "production", "OPENAI_API_KEY": "sk-prod"}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        assert settings.is_production is True
        assert settings.is_debug is False

    def test_get_settings_is_cached(self) -> None:
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
            assert reload_settings() is get_settings()
        finally:
            get_settings.cache_clear()
