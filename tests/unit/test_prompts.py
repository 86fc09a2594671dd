"""
Unit tests for prompt templates and context formatting.
"""

from langchain_core.prompts import ChatPromptTemplate

from tax_copilot.chat.prompts import (
    ANSWER_PROMPT,
    NOT_FOUND_ANSWER,
    PROMPT_VERSION,
    SYSTEM_PROMPT,
    format_context,
)
from tests.fakes import make_retrieved


class TestPromptTemplates:
    """Test suite for prompt template definitions."""

    def test_prompt_version(self):
        assert PROMPT_VERSION == "v1.0"

    def test_system_prompt_requires_json_and_not_found_phrase(self):
        assert NOT_FOUND_ANSWER in SYSTEM_PROMPT
        assert '"citations"' in SYSTEM_PROMPT
        assert '"confidence": "high|medium|low"' in SYSTEM_PROMPT

    def test_answer_prompt_is_chat_prompt(self):
        assert isinstance(ANSWER_PROMPT, ChatPromptTemplate)

    def test_answer_prompt_has_required_variables(self):
        assert set(ANSWER_PROMPT.input_variables) == {"context", "question"}

    def test_format_keeps_system_prompt_braces(self):
        messages = ANSWER_PROMPT.format_messages(context="CTX", question="Q?")

        assert messages[0].content == SYSTEM_PROMPT
        assert messages[1].content.startswith("CTX")
        assert "QUESTION: Q?" in messages[1].content


class TestFormatContext:
    """Test suite for context rendering."""

    def test_single_chunk(self):
        chunk = make_retrieved("chunk-a", 0.9, page_number=4)

        context = format_context([chunk])

        assert context.startswith("DOCUMENT CONTEXT:\n=================")
        assert (
            "--- Document: Excise Tax Act | Page: 4 | Section: Section 4.2: Input tax credits "
            "| ChunkId: chunk-a ---"
        ) in context
        assert context.endswith("Text of chunk-a")

    def test_missing_heading_rendered_as_na(self):
        chunk = make_retrieved("chunk-a", 0.9)
        chunk.section_heading = None

        assert "| Section: N/A |" in format_context([chunk])

    def test_chunks_kept_in_order(self):
        context = format_context([make_retrieved("first", 0.1), make_retrieved("second", 0.9)])

        assert context.index("ChunkId: first") < context.index("ChunkId: second")

    def test_empty(self):
        assert format_context([]) == "DOCUMENT CONTEXT:\n================="
