"""
Answer generation with a LangChain chat model.

The model's reply is expected to be JSON but is parsed leniently: the first
``{`` to the last ``}`` is decoded, keys are matched case-insensitively, and
anything unparseable falls back to the raw text with low confidence.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.runnables import Runnable
from pydantic import ValidationError as PydanticValidationError

from tax_copilot.chat.prompts import ANSWER_PROMPT, NOT_FOUND_ANSWER, format_context
from tax_copilot.core.interfaces import AnswerGenerator
from tax_copilot.domain.models import AskResponse, Citation, RetrievedChunk
from tax_copilot.utils.exceptions import GenerationError
from tax_copilot.utils.logging import get_logger, LoggerMixin

logger = get_logger(__name__)

_CONFIDENCE_LEVELS = {"high", "medium", "low"}
_CITATION_KEYS = {
    "documenttitle": "documentTitle",
    "pagenumber": "pageNumber",
    "sectionheading": "sectionHeading",
    "chunkid": "chunkId",
}


def _lower_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {str(key).lower(): value for key, value in data.items()}


def _fallback(raw: str) -> AskResponse:
    return AskResponse(answer=raw, citations=[], confidence="low")


def parse_answer(raw: str, allowed_chunk_ids: Optional[Iterable[str]] = None) -> AskResponse:
    """
    Parse a model reply into an ``AskResponse``.

    Args:
        raw: Model output text.
        allowed_chunk_ids: When given, citations to any other chunk id are dropped.

    Returns:
        The parsed response, or the raw text with low confidence and no
        citations if the reply holds no usable JSON object.
    """
    start = raw.find("{")
    end = raw.rfind("}")
    if start < 0 or end <= start:
        logger.warning("answer_not_json")
        return _fallback(raw)

    try:
        payload = json.loads(raw[start:end + 1])
    except json.JSONDecodeError as e:
        logger.warning("answer_json_invalid", error=str(e))
        return _fallback(raw)

    if not isinstance(payload, dict):
        return _fallback(raw)

    data = _lower_keys(payload)
    answer = data.get("answer")
    if not isinstance(answer, str):
        logger.warning("answer_field_missing")
        return _fallback(raw)

    confidence = str(data.get("confidence") or "low").strip().lower()
    if confidence not in _CONFIDENCE_LEVELS:
        confidence = "low"

    allowed = set(allowed_chunk_ids) if allowed_chunk_ids is not None else None
    citations: list[Citation] = []
    for item in data.get("citations") or []:
        if not isinstance(item, dict):
            continue
        fields = {
            _CITATION_KEYS[key]: value
            for key, value in _lower_keys(item).items()
            if key in _CITATION_KEYS
        }
        try:
            citation = Citation.model_validate(fields)
        except PydanticValidationError:
            logger.warning("citation_invalid", citation=item)
            continue
        if allowed is not None and citation.chunk_id not in allowed:
            logger.warning("citation_outside_context", chunk_id=citation.chunk_id)
            continue
        citations.append(citation)

    return AskResponse(answer=answer, citations=citations, confidence=confidence)


class LangChainAnswerGenerator(AnswerGenerator, LoggerMixin):
    """
    Answer generator backed by an LCEL chain: prompt | llm | StrOutputParser.

    Args:
        llm: Chat model (temperature and max tokens are set on the model).

    Example:
        >>> generator = LangChainAnswerGenerator(get_llm())
        >>> response = await generator.generate("What is the GST rate?", chunks)
        >>> response.confidence
        'high'
    """

    def __init__(self, llm: BaseChatModel) -> None:
        super().__init__()
        self.llm = llm
        self.chain = self._build_chain()

    def _build_chain(self) -> Runnable:
        return ANSWER_PROMPT | self.llm | StrOutputParser()

    async def generate(
        self, question: str, context_chunks: Sequence[RetrievedChunk]
    ) -> AskResponse:
        if not context_chunks:
            self.logger.info("no_context_chunks")
            return AskResponse(answer=NOT_FOUND_ANSWER, citations=[], confidence="low")

        try:
            raw = await self.chain.ainvoke({
                "context": format_context(context_chunks),
                "question": question,
            })
        except Exception as e:
            self.logger.error("answer_generation_failed", error=str(e), exc_info=True)
            raise GenerationError("Failed to generate answer", cause=e) from e

        self.logger.debug("raw_answer", length=len(raw))
        return parse_answer(raw, [chunk.chunk_id for chunk in context_chunks])

    async def is_available(self) -> bool:
        """Send the model a one-word prompt; False if it errors."""
        try:
            await self.llm.ainvoke("ping")
            return True
        except Exception as e:
            self.logger.error("chat_model_unavailable", error=str(e))
            return False
