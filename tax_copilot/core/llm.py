"""
Chat model construction for answer generation.

Only OpenAI-compatible endpoints are supported; ``openai_base_url`` points the
client at a self-hosted gateway when set.
"""

from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from tax_copilot.config.settings import LLMSettings
from tax_copilot.utils.exceptions import ConfigurationError
from tax_copilot.utils.logging import LoggerMixin, get_logger

logger = get_logger(__name__)


class LLMFactory(LoggerMixin):
    """Builds the chat model the answer generator calls."""

    @staticmethod
    def create(settings: LLMSettings) -> BaseChatModel:
        """
        Build the chat model described by ``settings``.

        Raises:
            ConfigurationError: No OpenAI API key is configured.
        """
        api_key = settings.openai_api_key.get_secret_value()
        if not api_key:
            raise ConfigurationError("OpenAI API key is required for the chat model")

        return LLMFactory.create_openai(
            api_key=api_key,
            model=settings.chat_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            base_url=settings.openai_base_url,
        )

    @staticmethod
    def create_openai(
        api_key: str,
        model: str = "gpt-4o",
        temperature: float = 0.1,
        max_tokens: int = 2000,
        base_url: str | None = None,
        **kwargs: Any,
    ) -> ChatOpenAI:
        """
        Args:
            api_key: OpenAI API key.
            model: Chat deployment name, e.g. ``gpt-4o``.
            temperature: Kept low so answers stay close to the cited text.
            max_tokens: Upper bound on the generated answer.
            base_url: OpenAI-compatible endpoint, if not api.openai.com.
            **kwargs: Passed through to ChatOpenAI.
        """
        logger.info("building_chat_model", model=model, max_tokens=max_tokens)

        if base_url:
            kwargs["base_url"] = base_url

        return ChatOpenAI(
            api_key=api_key,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )


def get_llm(settings: LLMSettings | None = None) -> BaseChatModel:
    """Chat model from ``settings``, or from the environment when omitted."""
    if settings is None:
        from tax_copilot.config.settings import get_settings

        settings = get_settings().llm

    return LLMFactory.create(settings)
