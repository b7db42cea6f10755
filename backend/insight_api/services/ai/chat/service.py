"""ThinkBot answers and chat-with-PDF answers."""

from __future__ import annotations

import logging

from ..common.client import raise_for_outcome
from ..common.json_tools import strip_reasoning
from ..common.router import GenerationClientFactory

logger = logging.getLogger(__name__)

THINKBOT_PROMPT = """You are a helpful AI assistant. Answer the user's question clearly and concisely.
Use Markdown formatting to structure your response.
- Use paragraphs for explanations.
- Use bullet points or numbered lists where appropriate.
- Use tables for comparisons or structured data.
- Use code blocks for code snippets.

Question:
{message}
"""

CHATPDF_SYSTEM_PROMPT = (
    "You are an AI assistant. Answer strictly based on the provided PDF content. Use markdown formatting."
)


async def thinkbot_answer(clients: GenerationClientFactory, message: str) -> str:
    outcome = await clients.generate("chat", THINKBOT_PROMPT.format(message=message))
    return raise_for_outcome(outcome, action="generate an answer")


async def chatpdf_answer(clients: GenerationClientFactory, pdf_text: str, question: str) -> str:
    outcome = await clients.generate(
        "chatpdf",
        f"PDF Content:\n{pdf_text}\n\nQuestion:\n{question}",
        system_prompt=CHATPDF_SYSTEM_PROMPT,
    )
    answer = raise_for_outcome(outcome, action="answer from the PDF")
    # Reasoning models prepend their chain of thought.
    return strip_reasoning(answer)
