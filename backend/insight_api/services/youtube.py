"""YouTube helpers: video search, video id parsing, title and transcript lookup.

Every lookup here is best-effort: a failure is logged and an empty value is
returned, so a missing video never fails course generation or summaries.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import httpx
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

logger = logging.getLogger(__name__)

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_OEMBED_URL = "https://www.youtube.com/oembed"

_VIDEO_ID_RE = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|shorts|live)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)


def extract_video_id(url: str) -> str | None:
    match = _VIDEO_ID_RE.search(url or "")
    return match.group(1) if match else None


async def search_videos(
    query: str,
    *,
    api_key: str,
    max_results: int = 5,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[dict[str, Any]]:
    """Top videos for *query* as ``[{videoId, title}]``; empty on any failure."""
    if not query or not api_key:
        return []

    params = {
        "part": "snippet",
        "q": query,
        "key": api_key,
        "type": "video",
        "maxResults": max_results,
    }
    try:
        async with httpx.AsyncClient(timeout=15.0, transport=transport) as client:
            resp = await client.get(YOUTUBE_SEARCH_URL, params=params)
            resp.raise_for_status()
            items = resp.json().get("items") or []
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("YouTube search failed for %r: %s", query, exc)
        return []

    return [
        {
            "videoId": (item.get("id") or {}).get("videoId"),
            "title": (item.get("snippet") or {}).get("title"),
        }
        for item in items
    ]


async def fetch_video_title(video_id: str, *, transport: httpx.AsyncBaseTransport | None = None) -> str:
    params = {"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"}
    try:
        async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
            resp = await client.get(YOUTUBE_OEMBED_URL, params=params, headers={"User-Agent": "Mozilla/5.0"})
            resp.raise_for_status()
            return str(resp.json().get("title") or "")
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("YouTube oEmbed lookup failed for %s: %s", video_id, exc)
        return ""


def _fetch_transcript_sync(video_id: str, languages: list[str]) -> str:
    transcript = YouTubeTranscriptApi().fetch(video_id, languages=languages)
    return " ".join(snippet.text for snippet in transcript)


async def fetch_transcript(video_id: str, languages: list[str] | None = None) -> str:
    try:
        return await asyncio.to_thread(_fetch_transcript_sync, video_id, languages or ["en"])
    except CouldNotRetrieveTranscript as exc:
        logger.warning("Transcript unavailable for %s: %s", video_id, type(exc).__name__)
        return ""
    except Exception as exc:
        # Network failures surface as requests errors from inside the library.
        logger.warning("Transcript fetch failed for %s: %s", video_id, exc)
        return ""
