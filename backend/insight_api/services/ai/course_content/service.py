"""Chapter content generation with a fixed throttle between chapters.

Single-chapter mode regenerates one index in place. All-chapters mode walks
the outline in order, sleeping ``AI_BATCH_DELAY_SECONDS`` between calls to
stay under free-tier provider limits; a chapter that fails is stored as an
error entry so the rest of the course still gets content.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from insight_api.core.config import get_settings
from insight_api.models.course import Course
from insight_api.services.youtube import search_videos

from ..common.client import raise_for_outcome
from ..common.errors import AIGenerationError
from ..common.json_tools import OutputShape
from ..common.router import GenerationClientFactory
from .contracts import ChapterContent, ChapterError

logger = logging.getLogger(__name__)

CHAPTER_PROMPT = """You are an AI that generates strictly valid JSON educational content.

RULES:
- Output ONLY valid JSON.
- The "content" field MUST be formatted using Markdown (headings, lists, code, etc.).
- Use "\\n" for newline characters inside the "content" string. (CRITICAL: Do not use actual literal newlines).
- No explanations or extra text outside the JSON.
- Generate content for EVERY topic listed in the provided chapter data. Do not skip any topics.

FORMAT:
{
  "chapterName": "Chapter Name",
  "topics": [
    {
      "topic": "Topic Name",
      "content": "Markdown lesson for this topic"
    }
  ]
}

CONTENT GUIDELINES:
1. Begin each topic with a clear definition in simple language, then in technical terms.
2. Use ### and #### headings for every sub-concept, bullet points for lists and tables for comparisons.
3. Explain step by step with analogies and realistic, industry-level examples.
4. For technical topics, follow every technique or sub-step with its own well-commented code block.
5. For math topics, show formulas (LaTeX when needed) and at least one solved example.
6. End every topic with a short summary, key takeaways and optional next topics to study.
7. Tone: friendly, patient and confident, like a senior teacher. No emojis, no fluff.

Chapter data:
"""

SleepFn = Callable[[float], Awaitable[Any]]


def normalize_course_json(course_json: Any) -> dict[str, Any]:
    """Accept the stored document, its JSON string, or the bare course object."""
    if isinstance(course_json, str):
        try:
            course_json = json.loads(course_json)
        except ValueError as exc:
            raise HTTPException(400, "courseJson is not valid JSON") from exc
    if isinstance(course_json, dict) and isinstance(course_json.get("course"), dict):
        course_json = course_json["course"]
    if not isinstance(course_json, dict) or not isinstance(course_json.get("chapters"), list):
        raise HTTPException(400, "Invalid chapters array")
    return course_json


async def generate_chapter(
    clients: GenerationClientFactory,
    chapter: dict[str, Any],
    *,
    include_video: bool,
) -> dict[str, Any]:
    outcome = await clients.generate(
        "course_content",
        CHAPTER_PROMPT + json.dumps(chapter, ensure_ascii=False),
        output_shape=OutputShape.JSON_OBJECT,
        temperature=0.2,
        top_p=1.0,
        max_tokens=8192,
    )
    payload = raise_for_outcome(outcome, action="generate chapter content")

    try:
        content = ChapterContent.model_validate(payload)
    except ValidationError as exc:
        raise AIGenerationError(502, "AI returned malformed chapter content", detail=str(exc)) from exc

    api_key = get_settings().youtube_api_key
    for topic in content.topics:
        topic.youtubeVideos = await search_videos(topic.topic, api_key=api_key) if include_video else []

    return content.model_dump()


def _chapter_name(chapter: Any) -> str | None:
    return chapter.get("chapterName") if isinstance(chapter, dict) else None


def _resolve_include_video(db: Session, course_id: str, include_video: bool | None) -> bool:
    if include_video is not None:
        return include_video
    course = db.query(Course).filter(Course.cid == course_id).first()
    return bool(course.include_video) if course else False


async def generate_course_content(
    db: Session,
    clients: GenerationClientFactory,
    *,
    course_id: str,
    course_json: Any,
    include_video: bool | None = None,
    chapter_index: int | None = None,
    sleep: SleepFn | None = None,
) -> list[Any]:
    outline = normalize_course_json(course_json)
    chapters: list[dict[str, Any]] = outline["chapters"]
    with_video = _resolve_include_video(db, course_id, include_video)
    course = db.query(Course).filter(Course.cid == course_id).first()

    if chapter_index is not None:
        if chapter_index >= len(chapters):
            raise HTTPException(400, f"chapterIndex {chapter_index} is out of range")
        content: list[Any] = list((course.course_content if course else None) or [])
        while len(content) <= chapter_index:
            content.append(None)
        content[chapter_index] = await generate_chapter(clients, chapters[chapter_index], include_video=with_video)
    else:
        sleep = sleep or asyncio.sleep
        delay = get_settings().ai_batch_delay_seconds
        content = []
        for position, chapter in enumerate(chapters):
            if position and delay > 0:
                await sleep(delay)
            try:
                content.append(await generate_chapter(clients, chapter, include_video=with_video))
            except AIGenerationError as exc:
                logger.warning("Chapter %d of course %s failed: %s", position, course_id, exc.message)
                content.append(
                    ChapterError(chapter=_chapter_name(chapter), message=exc.message).model_dump()
                )

    if course is None:
        logger.warning("Course %s not found; generated content not persisted", course_id)
    else:
        course.course_content = content
        db.commit()

    return content
