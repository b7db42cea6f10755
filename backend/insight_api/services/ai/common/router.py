"""AI Router: resolves a scope into an ordered, credentialed candidate list.

Resolution chain per scope (first non-empty wins):
  1. ``AI_<SCOPE>_CANDIDATES`` env override, e.g.
     ``gemini:gemini-flash-latest,openrouter:meta-llama/llama-3.3-70b-instruct:free``.
  2. Built-in ``SCOPE_DEFAULTS``.

Each candidate then gets its credential (scope key beats provider-wide key).
Candidates without a key are dropped with a warning; if none is left the
scope raises ``MissingCredentialError`` before any network call is made.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from insight_api.core.config import Settings, get_settings

from .breaker import BreakerRegistry
from .client import (
    Candidate,
    GenerationOutcome,
    GenerationRequest,
    ProviderFactory,
    ResilientGenerationClient,
    SleepFn,
    policy_from_settings,
)
from .errors import MissingCredentialError
from .json_tools import OutputShape
from .providers import KEYLESS_PROVIDERS, KNOWN_PROVIDERS

logger = logging.getLogger(__name__)

LLAMA_FREE = "openrouter:meta-llama/llama-3.3-70b-instruct:free"


@dataclass(frozen=True)
class ScopeDefaults:
    candidates: tuple[str, ...]
    timeout_seconds: float
    max_retries: int | None = None


SCOPE_DEFAULTS: dict[str, ScopeDefaults] = {
    "course_layout": ScopeDefaults(("gemini:gemini-flash-latest", LLAMA_FREE), 60),
    "course_content": ScopeDefaults(("nvidia:meta/llama-3.1-405b-instruct", LLAMA_FREE), 180),
    "quiz": ScopeDefaults(("nvidia:google/gemma-3-1b-it", LLAMA_FREE), 60),
    "grammar": ScopeDefaults(("openrouter:xiaomi/mimo-v2-flash:free",), 30),
    "image_to_text": ScopeDefaults(("openrouter:allenai/molmo-2-8b:free",), 30),
    "chat": ScopeDefaults(("gemini:gemini-flash-latest",), 60),
    "chatpdf": ScopeDefaults(("openrouter:tngtech/deepseek-r1t2-chimera:free",), 120),
    "summarize": ScopeDefaults((LLAMA_FREE,), 120),
    "image": ScopeDefaults(("pollinations:flux",), 60, 2),
    "thumbnail": ScopeDefaults(("gemini:gemini-3-pro-image-preview",), 120, 2),
}


@dataclass(frozen=True)
class ResolvedScope:
    scope: str
    candidates: list[Candidate]
    max_retries: int | None
    skipped: list[str]


def parse_candidate_spec(spec: str) -> tuple[str, str]:
    """Split ``provider:model`` on the first colon; the model may contain more."""
    provider, sep, model = spec.strip().partition(":")
    provider = provider.strip().lower()
    if not sep or not provider or not model.strip():
        raise ValueError(f"Invalid AI candidate {spec!r}; expected 'provider:model'")
    if provider not in KNOWN_PROVIDERS:
        raise ValueError(f"Unknown AI provider {provider!r} in candidate {spec!r}")
    return provider, model.strip()


def _candidate_specs(scope: str, settings: Settings) -> tuple[list[str], ScopeDefaults]:
    defaults = SCOPE_DEFAULTS.get(scope)
    if defaults is None:
        raise ValueError(f"Unknown AI scope: {scope!r}")
    specs = settings.candidate_overrides(scope) or list(defaults.candidates)
    return specs, defaults


def resolve(scope: str, settings: Settings | None = None) -> ResolvedScope:
    settings = settings or get_settings()
    specs, defaults = _candidate_specs(scope, settings)
    timeout = settings.ai_timeout_seconds if settings.ai_timeout_seconds > 0 else defaults.timeout_seconds

    candidates: list[Candidate] = []
    skipped: list[str] = []
    for spec in specs:
        provider, model = parse_candidate_spec(spec)
        api_key = "" if provider in KEYLESS_PROVIDERS else settings.credential_for(provider, scope)
        if provider not in KEYLESS_PROVIDERS and not api_key:
            logger.warning("AI scope %r: no API key for %s, skipping candidate %s", scope, provider, model)
            skipped.append(provider)
            continue
        candidates.append(Candidate(provider=provider, model=model, timeout_seconds=timeout, api_key=api_key))

    if not candidates:
        raise MissingCredentialError(scope, skipped)

    return ResolvedScope(scope=scope, candidates=candidates, max_retries=defaults.max_retries, skipped=skipped)


def unconfigured_scopes(settings: Settings) -> list[str]:
    """Scopes that would raise ``MissingCredentialError`` on first use."""
    missing: list[str] = []
    for scope in SCOPE_DEFAULTS:
        try:
            resolve(scope, settings)
        except MissingCredentialError:
            missing.append(scope)
        except ValueError as exc:
            logger.error("AI scope %r misconfigured: %s", scope, exc)
            missing.append(scope)
    return missing


class GenerationClientFactory:
    """Builds scope-bound generation clients sharing one breaker registry."""

    def __init__(
        self,
        breakers: BreakerRegistry,
        *,
        provider_factory: ProviderFactory | None = None,
        sleep: SleepFn | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.breakers = breakers
        self._provider_factory = provider_factory
        self._sleep = sleep
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def for_scope(self, scope: str) -> ResilientGenerationClient:
        return ResilientGenerationClient(
            scope=scope,
            policy=policy_from_settings(self.settings),
            breaker=self.breakers.get(scope),
            provider_factory=self._provider_factory,
            sleep=self._sleep,
        )

    async def generate(
        self,
        scope: str,
        prompt: str,
        *,
        output_shape: OutputShape = OutputShape.RAW_TEXT,
        **options: Any,
    ) -> GenerationOutcome:
        resolved = resolve(scope, self.settings)
        request = GenerationRequest(
            prompt=prompt,
            candidates=resolved.candidates,
            output_shape=output_shape,
            max_retries_per_candidate=resolved.max_retries,
            **options,
        )
        return await self.for_scope(scope).generate(request)
