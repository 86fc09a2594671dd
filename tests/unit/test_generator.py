"""
Unit tests for answer generation and reply parsing.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from tax_copilot.chat.generator import LangChainAnswerGenerator, parse_answer
from tax_copilot.chat.prompts import NOT_FOUND_ANSWER
from tax_copilot.utils.exceptions import GenerationError
from tests.fakes import make_retrieved

VALID_REPLY = json.dumps({
    "answer": "Returns are due monthly.",
    "citations": [
        {
            "documentTitle": "Excise Tax Act",
            "pageNumber": 3,
            "sectionHeading": "Section 2: Returns",
            "chunkId": "chunk-a",
        }
    ],
    "confidence": "high",
})


class TestParseAnswer:
    """Test suite for lenient JSON parsing."""

    def test_valid_json(self):
        response = parse_answer(VALID_REPLY)

        assert response.answer == "Returns are due monthly."
        assert response.confidence == "high"
        assert len(response.citations) == 1
        citation = response.citations[0]
        assert citation.document_title == "Excise Tax Act"
        assert citation.page_number == 3
        assert citation.section_heading == "Section 2: Returns"
        assert citation.chunk_id == "chunk-a"

    def test_json_wrapped_in_prose_and_fences(self):
        raw = f"Here is the answer:\n```json\n{VALID_REPLY}\n```\nThanks."

        response = parse_answer(raw)

        assert response.answer == "Returns are due monthly."
        assert response.confidence == "high"

    def test_keys_matched_case_insensitively(self):
        raw = json.dumps({
            "Answer": "Yes.",
            "CITATIONS": [{"DocumentTitle": "Act", "PAGENUMBER": 2, "chunkid": "c1"}],
            "Confidence": "MEDIUM",
        })

        response = parse_answer(raw)

        assert response.answer == "Yes."
        assert response.confidence == "medium"
        assert response.citations[0].chunk_id == "c1"
        assert response.citations[0].page_number == 2

    def test_not_json_falls_back_to_raw_text(self):
        response = parse_answer("I could not format my answer.")

        assert response.answer == "I could not format my answer."
        assert response.citations == []
        assert response.confidence == "low"

    def test_malformed_json_falls_back(self):
        raw = '{"answer": "unterminated'  + "}"

        response = parse_answer(raw)

        assert response.answer == raw
        assert response.confidence == "low"

    def test_missing_answer_falls_back(self):
        raw = json.dumps({"citations": [], "confidence": "high"})

        response = parse_answer(raw)

        assert response.answer == raw
        assert response.confidence == "low"

    @pytest.mark.parametrize("confidence", ["certain", "", None, 5])
    def test_unknown_confidence_becomes_low(self, confidence):
        raw = json.dumps({"answer": "A.", "citations": [], "confidence": confidence})

        assert parse_answer(raw).confidence == "low"

    def test_citation_without_chunk_id_skipped(self):
        raw = json.dumps({
            "answer": "A.",
            "citations": [{"documentTitle": "Act", "pageNumber": 1}, "not a dict"],
            "confidence": "low",
        })

        assert parse_answer(raw).citations == []

    def test_citation_outside_context_dropped(self):
        response = parse_answer(VALID_REPLY, allowed_chunk_ids=["chunk-b"])

        assert response.citations == []
        assert response.answer == "Returns are due monthly."

    def test_citation_inside_context_kept(self):
        response = parse_answer(VALID_REPLY, allowed_chunk_ids=["chunk-a", "chunk-b"])

        assert [c.chunk_id for c in response.citations] == ["chunk-a"]

    def test_response_serializes_camel_case(self):
        dumped = parse_answer(VALID_REPLY).model_dump(by_alias=True)

        assert dumped["citations"][0]["chunkId"] == "chunk-a"
        assert dumped["citations"][0]["documentTitle"] == "Excise Tax Act"


class TestLangChainAnswerGenerator:
    """Test suite for the LCEL-backed generator."""

    @pytest.mark.asyncio
    async def test_generates_from_model_reply(self):
        generator = LangChainAnswerGenerator(FakeListChatModel(responses=[VALID_REPLY]))

        response = await generator.generate(
            "When are returns due?", [make_retrieved("chunk-a", 0.9, page_number=3)]
        )

        assert response.answer == "Returns are due monthly."
        assert response.confidence == "high"
        assert [c.chunk_id for c in response.citations] == ["chunk-a"]

    @pytest.mark.asyncio
    async def test_empty_context_skips_model(self):
        llm = MagicMock()
        generator = LangChainAnswerGenerator(FakeListChatModel(responses=["unused"]))
        generator.chain = llm

        response = await generator.generate("When are returns due?", [])

        assert response.answer == NOT_FOUND_ANSWER
        assert response.confidence == "low"
        assert response.citations == []
        llm.ainvoke.assert_not_called()

    @pytest.mark.asyncio
    async def test_prompt_contains_context_and_question(self):
        generator = LangChainAnswerGenerator(FakeListChatModel(responses=[VALID_REPLY]))
        generator.chain = MagicMock()
        generator.chain.ainvoke = AsyncMock(return_value=VALID_REPLY)

        await generator.generate("When are returns due?", [make_retrieved("chunk-a", 0.9)])

        inputs = generator.chain.ainvoke.call_args.args[0]
        assert inputs["question"] == "When are returns due?"
        assert "ChunkId: chunk-a" in inputs["context"]

    @pytest.mark.asyncio
    async def test_model_failure_raises_generation_error(self):
        generator = LangChainAnswerGenerator(FakeListChatModel(responses=[VALID_REPLY]))
        generator.chain = MagicMock()
        generator.chain.ainvoke = AsyncMock(side_effect=TimeoutError("timed out"))

        with pytest.raises(GenerationError) as exc_info:
            await generator.generate("When are returns due?", [make_retrieved("chunk-a", 0.9)])

        assert isinstance(exc_info.value.cause, TimeoutError)

    @pytest.mark.asyncio
    async def test_is_available(self):
        generator = LangChainAnswerGenerator(FakeListChatModel(responses=["pong"]))

        assert await generator.is_available() is True
