"""
Prompt templates for grounded tax answers.

The model is asked for a JSON object with the answer, citations pointing at
context chunk ids, and a self-assessed confidence. ``PROMPT_VERSION`` is
recorded in every audit entry and must change whenever these prompts do.
"""

from typing import Sequence

from langchain_core.prompts import ChatPromptTemplate

from tax_copilot.domain.models import RetrievedChunk

PROMPT_VERSION = "v1.0"

NOT_FOUND_ANSWER = "Not found in provided documents."

SYSTEM_PROMPT = """You are a tax law expert assistant. Your task is to answer questions based ONLY on the provided document context.

STRICT RULES:
1. Answer ONLY based on the information in the provided context
2. If the answer is not found in the context, respond with: "Not found in provided documents."
3. Always cite your sources with document title, page number, and section heading
4. Be precise and accurate - do not speculate or add information not in the context
5. Assess your confidence level based on how directly the context answers the question

OUTPUT FORMAT:
You must respond with a valid JSON object in exactly this format:
{
  "answer": "Your detailed answer here",
  "citations": [
    {"documentTitle": "Title", "pageNumber": 1, "sectionHeading": "Section", "chunkId": "id"}
  ],
  "confidence": "high|medium|low"
}

CONFIDENCE LEVELS:
- high: The context directly and completely answers the question
- medium: The context partially answers the question or requires some interpretation
- low: The context only tangentially relates to the question"""


QUESTION_TEMPLATE = """{context}

QUESTION: {question}

Provide your answer in the required JSON format."""


def _escape_braces(text: str) -> str:
    return text.replace("{", "{{").replace("}", "}}")


ANSWER_PROMPT = ChatPromptTemplate.from_messages([
    ("system", _escape_braces(SYSTEM_PROMPT)),
    ("human", QUESTION_TEMPLATE),
])


def format_context(chunks: Sequence[RetrievedChunk]) -> str:
    """
    Render context chunks for the prompt.

    Each chunk is introduced by a header line naming its document, page,
    section and chunk id so the model can cite it.
    """
    lines = ["DOCUMENT CONTEXT:", "================="]
    for chunk in chunks:
        lines.append(
            f"\n--- Document: {chunk.document_title} | Page: {chunk.page_number} "
            f"| Section: {chunk.section_heading or 'N/A'} | ChunkId: {chunk.chunk_id} ---"
        )
        lines.append(chunk.chunk_text)
    return "\n".join(lines)
