"""Course banner lookup: Unsplash photo when configured, Pollinations otherwise."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from insight_api.core.config import get_settings
from insight_api.services.ai.common.providers.pollinations import pollinations_image_url

logger = logging.getLogger(__name__)

UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"


async def _unsplash_banner(query: str, access_key: str, transport: httpx.AsyncBaseTransport | None) -> str | None:
    params = {"query": query, "orientation": "landscape", "per_page": 1}
    headers = {"Authorization": f"Client-ID {access_key}"}
    async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
        resp = await client.get(UNSPLASH_SEARCH_URL, params=params, headers=headers)
        resp.raise_for_status()
        results = resp.json().get("results") or []
    if not results:
        return None
    return (results[0].get("urls") or {}).get("regular")


async def fetch_course_banner(course: dict[str, Any], *, transport: httpx.AsyncBaseTransport | None = None) -> str:
    settings = get_settings()
    if settings.unsplash_access_key:
        query = f"{course.get('name', '')} {course.get('category', '')} {course.get('level', '')} course".strip()
        try:
            url = await _unsplash_banner(query, settings.unsplash_access_key, transport)
            if url:
                return url
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Unsplash banner lookup failed: %s", exc)

    prompt = course.get("bannerImagePrompt") or (
        f"{course.get('name', '')} {course.get('category', '')} {course.get('level', '')} course cover"
    )
    return pollinations_image_url(prompt.strip())
