"""Course content contracts: one generated chapter."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TopicContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    topic: str = ""
    content: str = ""
    youtubeVideos: list[dict[str, Any]] = Field(default_factory=list)


class ChapterContent(BaseModel):
    """Structured output expected for one chapter."""

    model_config = ConfigDict(extra="allow")

    chapterName: str = ""
    topics: list[TopicContent] = Field(default_factory=list)


class ChapterError(BaseModel):
    """Placeholder stored for a chapter whose generation failed."""

    error: bool = True
    chapter: str | None = None
    message: str
