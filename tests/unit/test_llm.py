"""
Tests for the chat model factory.
"""

from unittest.mock import patch

import pytest

from tax_copilot.config.settings import LLMSettings
from tax_copilot.core.llm import LLMFactory, get_llm
from tax_copilot.utils.exceptions import ConfigurationError


class TestLLMFactory:
    def test_missing_api_key(self) -> None:
        with pytest.raises(ConfigurationError, match="API key"):
            LLMFactory.create(LLMSettings(openai_api_key=""))

    def test_create_from_settings(self) -> None:
        settings = LLMSettings(
            openai_api_key="sk-test",
            chat_model="gpt-4o-mini",
            llm_temperature=0.0,
            llm_max_tokens=500,
        )

        with patch("tax_copilot.core.llm.ChatOpenAI") as mock_chat:
            LLMFactory.create(settings)

        mock_chat.assert_called_once_with(
            api_key="sk-test",
            model="gpt-4o-mini",
            temperature=0.0,
            max_tokens=500,
        )

    def test_base_url(self) -> None:
        with patch("tax_copilot.core.llm.ChatOpenAI") as mock_chat:
            LLMFactory.create_openai(api_key="sk-test", base_url="http://localhost:1234/v1")

        assert mock_chat.call_args.kwargs["base_url"] == "http://localhost:1234/v1"

    def test_real_client_is_built(self) -> None:
        llm = get_llm(LLMSettings(openai_api_key="sk-test", chat_model="gpt-4o"))

        assert llm.model_name == "gpt-4o"
