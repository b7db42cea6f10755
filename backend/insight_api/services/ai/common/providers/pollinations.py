"""Pollinations image provider. Returns the generated image as base64 text."""

from __future__ import annotations

import base64
import time
from urllib.parse import quote

from ..errors import ProviderCallError
from .base import BaseProvider, ProviderRequest, ProviderResult, elapsed_ms

POLLINATIONS_BASE_URL = "https://image.pollinations.ai/prompt"


def pollinations_image_url(prompt: str) -> str:
    return f"{POLLINATIONS_BASE_URL}/{quote(prompt, safe='')}?nologo=true"


class PollinationsProvider(BaseProvider):
    name = "pollinations"

    async def generate(self, request: ProviderRequest) -> ProviderResult:
        t0 = time.monotonic()
        params = {"nologo": "true"}
        if request.model:
            params["model"] = request.model

        resp = await self._send(
            "GET",
            f"{POLLINATIONS_BASE_URL}/{quote(request.prompt, safe='')}",
            timeout_seconds=request.timeout_seconds,
            params=params,
        )
        if not resp.content:
            raise ProviderCallError("Pollinations returned an empty image")

        return ProviderResult(
            raw_text=base64.b64encode(resp.content).decode("ascii"),
            model=request.model or "default",
            provider=self.name,
            latency_ms=elapsed_ms(t0),
            extra={"content_type": resp.headers.get("content-type", "image/jpeg")},
        )
