"""Quiz generation: topic -> validated multiple-choice questions."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ..common.client import raise_for_outcome
from ..common.errors import AIGenerationError
from ..common.json_tools import OutputShape
from ..common.router import GenerationClientFactory
from .contracts import QuizQuestion

logger = logging.getLogger(__name__)


def build_quiz_prompt(topic: str, num_questions: int) -> str:
    return (
        f'Generate a quiz with exactly {num_questions} multiple-choice questions about "{topic}" in JSON format:\n'
        "[{\n"
        '  "question": "Question?",\n'
        '  "options": ["A","B","C","D"],\n'
        '  "answer": "Correct answer"\n'
        "}]\n"
        "Return pure JSON only. No markdown. No code fences."
    )


async def generate_quiz(clients: GenerationClientFactory, topic: str, num_questions: int = 5) -> list[dict[str, Any]]:
    outcome = await clients.generate(
        "quiz",
        build_quiz_prompt(topic, num_questions),
        output_shape=OutputShape.JSON_ARRAY,
        temperature=0.1,
        top_p=0.7,
        max_tokens=512 if num_questions <= 5 else 2048,
    )
    payload = raise_for_outcome(outcome, action="generate quiz")

    questions: list[dict[str, Any]] = []
    for item in payload if isinstance(payload, list) else []:
        try:
            questions.append(QuizQuestion.model_validate(item).model_dump())
        except ValidationError:
            logger.info("Dropping malformed quiz question: %r", item)

    if not questions:
        raise AIGenerationError(502, "AI returned no usable quiz questions")
    if len(questions) != num_questions:
        logger.info("Quiz for %r has %d question(s), %d requested", topic, len(questions), num_questions)
    return questions
