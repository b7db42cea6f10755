"""Abstract base for all AI providers."""

from __future__ import annotations

import abc
import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..errors import ErrorKind, ProviderCallError, error_from_response


@dataclass(frozen=True)
class ProviderRequest:
    """One call to one model; built by the generation client per attempt."""

    prompt: str
    model: str
    system_prompt: str | None = None
    image_base64: str | None = None
    image_mime_type: str = "image/png"
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0
    extra: dict[str, Any] = field(default_factory=dict)


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement.

    ``generate`` returns a ``ProviderResult`` or raises ``ProviderCallError``
    for any expected provider failure (HTTP error, timeout, empty answer).
    """

    name: str = "base"

    def __init__(self, api_key: str = "", *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._api_key = api_key
        self._transport = transport

    @abc.abstractmethod
    async def generate(self, request: ProviderRequest) -> ProviderResult:
        """Send *request* and return a ``ProviderResult``."""

    async def _send(
        self,
        method: str,
        url: str,
        *,
        timeout_seconds: float,
        headers: dict[str, str] | None = None,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
                # httpx times each phase separately; this bounds the whole call.
                resp = await asyncio.wait_for(
                    client.request(method, url, headers=headers, json=json, params=params),
                    timeout_seconds,
                )
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise ProviderCallError(
                f"{self.name} request timed out after {timeout_seconds:.0f}s",
                kind=ErrorKind.TIMEOUT,
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderCallError(f"{self.name} transport error: {exc}", kind=ErrorKind.TRANSPORT) from exc

        if resp.status_code >= 400:
            raise error_from_response(resp)
        return resp

    async def _post_json(
        self,
        url: str,
        *,
        timeout_seconds: float,
        headers: dict[str, str] | None = None,
        payload: Any = None,
    ) -> dict[str, Any]:
        resp = await self._send("POST", url, timeout_seconds=timeout_seconds, headers=headers, json=payload)
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderCallError(
                f"{self.name} returned a non-JSON body",
                status_code=resp.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise ProviderCallError(f"{self.name} returned an unexpected body", status_code=resp.status_code)
        return data


def elapsed_ms(t0: float) -> float:
    return round((time.monotonic() - t0) * 1000, 2)
