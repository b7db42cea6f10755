"""Course layout contracts: the JSON shape a layout model must return."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class LayoutModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class CourseChapter(LayoutModel):
    chapter_name: str = Field(..., min_length=1)
    duration: str = ""
    topics: list[str] = Field(default_factory=list)

    @field_validator("topics", mode="before")
    @classmethod
    def topics_as_strings(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(t) if not isinstance(t, dict) else str(t.get("topic") or t.get("name") or "") for t in v]


class CourseLayout(LayoutModel):
    """Structured output expected from course layout generation."""

    name: str = Field(..., min_length=1)
    description: str = ""
    category: str = ""
    level: str = "Beginner"
    duration: str = ""
    include_video: bool = False
    no_of_chapters: int = 0
    banner_image_prompt: str = ""
    chapters: list[CourseChapter] = Field(..., min_length=1)

    @field_validator("include_video", mode="before")
    @classmethod
    def coerce_bool(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() in {"true", "yes", "1"}
        return bool(v)

    @field_validator("no_of_chapters", mode="before")
    @classmethod
    def coerce_int(cls, v: Any) -> int:
        try:
            return int(v)
        except (TypeError, ValueError):
            return 0
