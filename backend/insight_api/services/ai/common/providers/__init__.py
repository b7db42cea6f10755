"""Provider factory: returns the adapter instance for a provider name."""

from __future__ import annotations

import logging

import httpx

from insight_api.core.config import get_settings

from .base import BaseProvider, ProviderRequest, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = [
    "KEYLESS_PROVIDERS",
    "KNOWN_PROVIDERS",
    "get_provider",
    "BaseProvider",
    "ProviderRequest",
    "ProviderResult",
    "MockProvider",
]

KNOWN_PROVIDERS = ("gemini", "nvidia", "openrouter", "pollinations", "mock")
KEYLESS_PROVIDERS = frozenset({"pollinations", "mock"})


def get_provider(
    provider_name: str,
    api_key: str = "",
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    Unknown names raise ``ValueError``: a typo in a candidate list must not
    silently turn into canned mock output.
    """
    name = provider_name.lower().strip()

    if name == "mock":
        return MockProvider(api_key, transport=transport)

    if name == "gemini":
        from .gemini import GeminiProvider

        return GeminiProvider(api_key, transport=transport)

    if name == "nvidia":
        from .openai_compat import NvidiaProvider

        return NvidiaProvider(api_key, transport=transport)

    if name == "openrouter":
        from .openai_compat import OpenRouterProvider

        settings = get_settings()
        return OpenRouterProvider(
            api_key,
            referer=settings.openrouter_referer,
            title=settings.openrouter_title,
            transport=transport,
        )

    if name == "pollinations":
        from .pollinations import PollinationsProvider

        return PollinationsProvider(api_key, transport=transport)

    logger.error("Unknown AI provider %r", name)
    raise ValueError(f"Unknown AI provider: {provider_name!r}")
