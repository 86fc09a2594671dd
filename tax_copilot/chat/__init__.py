"""
Chat module for Tax Copilot.

This module answers questions over indexed documents:
- Prompt templates with a versioned JSON answer format
- LangChain answer generator with lenient JSON parsing
- Audit trail of every query attempt
- The RAG query pipeline tying them together
"""

from tax_copilot.chat.audit import AuditTrail, serialize_filters, serialize_retrieved
from tax_copilot.chat.generator import LangChainAnswerGenerator, parse_answer
from tax_copilot.chat.pipeline import RAGQueryPipeline
from tax_copilot.chat.prompts import (
    ANSWER_PROMPT,
    NOT_FOUND_ANSWER,
    PROMPT_VERSION,
    SYSTEM_PROMPT,
    format_context,
)

__all__ = [
    "AuditTrail",
    "serialize_filters",
    "serialize_retrieved",
    "LangChainAnswerGenerator",
    "parse_answer",
    "RAGQueryPipeline",
    "ANSWER_PROMPT",
    "NOT_FOUND_ANSWER",
    "PROMPT_VERSION",
    "SYSTEM_PROMPT",
    "format_context",
]
