"""Course layout generation: form input -> validated course outline."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from ..common.client import raise_for_outcome
from ..common.errors import AIGenerationError
from ..common.json_tools import OutputShape
from ..common.router import GenerationClientFactory
from .contracts import CourseLayout

logger = logging.getLogger(__name__)

COURSE_LAYOUT_PROMPT = """Generate Learning Course based on user input.

Include:
- Course Name
- Description
- Category
- Level
- Duration
- Include Video (boolean)
- Number of Chapters
- Course Banner Image Prompt
- Chapters with topics

Return ONLY valid JSON.

Schema:
{
  "course": {
    "name": "string",
    "description": "string",
    "category": "string",
    "level": "string",
    "duration": "string",
    "includeVideo": "boolean",
    "noOfChapters": "number",
    "bannerImagePrompt": "string",
    "chapters": [
      {
        "chapterName": "string",
        "duration": "string",
        "topics": ["string"]
      }
    ]
  }
}
"""


def build_layout_prompt(form_data: dict[str, Any]) -> str:
    return f"{COURSE_LAYOUT_PROMPT}\nUser Input:\n{json.dumps(form_data, ensure_ascii=False)}"


async def generate_course_layout(
    clients: GenerationClientFactory,
    form_data: dict[str, Any],
) -> tuple[CourseLayout, dict[str, Any]]:
    """Return the validated layout and the raw ``{"course": {...}}`` document to store."""
    outcome = await clients.generate(
        "course_layout",
        build_layout_prompt(form_data),
        output_shape=OutputShape.JSON_OBJECT,
    )
    payload = raise_for_outcome(outcome, action="generate the course layout")

    course = payload.get("course", payload) if isinstance(payload, dict) else None
    if not isinstance(course, dict):
        raise AIGenerationError(502, "AI returned an incomplete course layout")

    try:
        layout = CourseLayout.model_validate(course)
    except ValidationError as exc:
        logger.warning("Course layout failed validation: %s", exc.errors()[:3])
        raise AIGenerationError(502, "AI returned an incomplete course layout", detail=str(exc)) from exc

    if not layout.no_of_chapters:
        layout.no_of_chapters = len(layout.chapters)

    return layout, {"course": course}
