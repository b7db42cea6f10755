"""Resilient generation client: ordered candidates, classified retries, fallback.

One ``generate`` call walks the candidate list strictly in order and never
runs two attempts at once. Each failure is classified into an ``ErrorKind``;
the kind decides whether the same candidate is retried (after a backoff
sleep) or the client advances to the next candidate. Expected provider
failures never escape as exceptions: the caller always gets one of
``GenerationSuccess``, ``GenerationExhausted`` or ``GenerationUnparsable``.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx

from .audit import log_ai_run
from .breaker import CircuitBreaker
from .errors import (
    AIGenerationError,
    ErrorKind,
    ExtractionError,
    ProviderCallError,
    classify_error,
)
from .json_tools import OutputShape, extract_structured
from .providers import BaseProvider, ProviderRequest, ProviderResult, get_provider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str, str], BaseProvider]
SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class Candidate:
    """One (provider, model) pair an attempt may target."""

    provider: str
    model: str
    timeout_seconds: float = 30.0
    api_key: str = field(default="", repr=False)

    @property
    def label(self) -> str:
        return f"{self.provider}:{self.model}"


@dataclass
class GenerationRequest:
    prompt: str
    candidates: list[Candidate]
    output_shape: OutputShape = OutputShape.RAW_TEXT
    max_retries_per_candidate: int | None = None
    system_prompt: str | None = None
    image_base64: str | None = None
    image_mime_type: str = "image/png"
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None

    def validate(self) -> None:
        if not isinstance(self.prompt, str) or not self.prompt.strip():
            raise ValueError("GenerationRequest.prompt must be a non-empty string")
        if not self.candidates:
            raise ValueError("GenerationRequest.candidates must not be empty")
        if self.max_retries_per_candidate is not None and self.max_retries_per_candidate < 1:
            raise ValueError("max_retries_per_candidate must be >= 1")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries_per_candidate: int = 3
    transient_max_attempts: int = 2
    timeout_max_attempts: int = 2
    backoff_base_seconds: float = 1.0
    backoff_cap_seconds: float = 30.0
    backoff_jitter_seconds: float = 0.5
    max_provider_wait_seconds: float = 60.0
    default_retry_after_seconds: int = 30
    breaker_cooldown_seconds: int = 60

    def max_attempts(self, kind: ErrorKind, max_retries: int) -> int:
        """Attempt budget on one candidate for a failure of *kind*."""
        if kind is ErrorKind.RATE_LIMITED:
            return max_retries
        if kind in (ErrorKind.OVERLOADED, ErrorKind.TRANSPORT):
            return max(1, min(max_retries, self.transient_max_attempts))
        if kind is ErrorKind.TIMEOUT:
            return max(1, min(max_retries, self.timeout_max_attempts))
        return 1

    def backoff_seconds(self, attempt: int, jitter: float) -> float:
        delay = (2**attempt) * self.backoff_base_seconds + jitter * self.backoff_jitter_seconds
        return min(delay, self.backoff_cap_seconds)

    def delay_before_retry(self, attempt: int, retry_after: int | None, jitter: float) -> float | None:
        """Seconds to wait before the next attempt, or None to stop retrying."""
        if retry_after is not None:
            if retry_after > self.max_provider_wait_seconds:
                return None
            return float(retry_after)
        return self.backoff_seconds(attempt, jitter)


def policy_from_settings(settings) -> RetryPolicy:
    return RetryPolicy(
        max_retries_per_candidate=settings.ai_max_retries_per_candidate,
        transient_max_attempts=settings.ai_transient_max_attempts,
        backoff_base_seconds=settings.ai_backoff_base_seconds,
        backoff_cap_seconds=settings.ai_backoff_cap_seconds,
        backoff_jitter_seconds=settings.ai_backoff_jitter_seconds,
        max_provider_wait_seconds=settings.ai_max_provider_wait_seconds,
        default_retry_after_seconds=settings.ai_default_retry_after_seconds,
        breaker_cooldown_seconds=settings.ai_breaker_cooldown_seconds,
    )


@dataclass(frozen=True)
class AttemptRecord:
    provider: str
    model: str
    attempt: int
    kind: ErrorKind | None = None
    message: str = ""
    retry_after_seconds: int | None = None
    delay_seconds: float = 0.0
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.kind is None


@dataclass
class GenerationSuccess:
    payload: Any
    raw_text: str
    provider: str
    model: str
    attempts: list[AttemptRecord] = field(default_factory=list)
    fallback_used: bool = False

    success = True


@dataclass
class GenerationExhausted:
    last_error_kind: ErrorKind
    all_rate_limited: bool
    retry_after_seconds: int
    message: str = ""
    attempts: list[AttemptRecord] = field(default_factory=list)
    short_circuited: bool = False

    success = False


@dataclass
class GenerationUnparsable:
    """The call succeeded but the model output held no usable JSON."""

    kind: str
    reason: str
    raw_text: str
    provider: str
    model: str
    attempts: list[AttemptRecord] = field(default_factory=list)

    success = False


GenerationOutcome = GenerationSuccess | GenerationExhausted | GenerationUnparsable


@dataclass(frozen=True)
class _TerminalFailure:
    kind: ErrorKind
    message: str
    retry_after_seconds: int | None


class ResilientGenerationClient:
    def __init__(
        self,
        *,
        scope: str = "default",
        policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
        provider_factory: ProviderFactory | None = None,
        sleep: SleepFn | None = None,
        clock: Callable[[], float] | None = None,
        rng: Callable[[], float] | None = None,
    ) -> None:
        self.scope = scope
        self.policy = policy or RetryPolicy()
        self.breaker = breaker
        self._provider_factory = provider_factory or get_provider
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self._rng = rng or random.random

    async def generate(self, request: GenerationRequest) -> GenerationOutcome:
        request.validate()
        max_retries = request.max_retries_per_candidate or self.policy.max_retries_per_candidate

        if self.breaker is not None and self.breaker.is_open(self._clock()):
            remaining = max(1, self.breaker.remaining_seconds(self._clock()))
            logger.warning("AI scope %r short-circuited: quota block active for %ss", self.scope, remaining)
            outcome = GenerationExhausted(
                last_error_kind=ErrorKind.RATE_LIMITED,
                all_rate_limited=True,
                retry_after_seconds=remaining,
                message="AI quota exhausted; calls are paused",
                short_circuited=True,
            )
            log_ai_run(scope=self.scope, prompt_text=request.prompt, outcome=outcome)
            return outcome

        attempts: list[AttemptRecord] = []
        terminal: list[_TerminalFailure] = []

        for index, candidate in enumerate(request.candidates):
            provider = self._provider_factory(candidate.provider, candidate.api_key)
            result, failure = await self._run_candidate(provider, candidate, request, max_retries, attempts)
            if result is not None:
                outcome = self._finish(request, candidate, result, attempts, fallback_used=index > 0)
                log_ai_run(scope=self.scope, prompt_text=request.prompt, outcome=outcome)
                return outcome

            terminal.append(failure)
            if index + 1 < len(request.candidates):
                logger.warning(
                    "AI scope %r: %s failed (%s), falling back to %s",
                    self.scope,
                    candidate.label,
                    failure.kind.value,
                    request.candidates[index + 1].label,
                )

        outcome = self._exhausted(terminal, attempts)
        log_ai_run(scope=self.scope, prompt_text=request.prompt, outcome=outcome)
        return outcome

    async def _run_candidate(
        self,
        provider: BaseProvider,
        candidate: Candidate,
        request: GenerationRequest,
        max_retries: int,
        attempts: list[AttemptRecord],
    ) -> tuple[ProviderResult | None, _TerminalFailure | None]:
        provider_request = ProviderRequest(
            prompt=request.prompt,
            model=candidate.model,
            system_prompt=request.system_prompt,
            image_base64=request.image_base64,
            image_mime_type=request.image_mime_type,
            temperature=request.temperature,
            top_p=request.top_p,
            max_tokens=request.max_tokens,
            timeout_seconds=candidate.timeout_seconds,
        )

        attempt = 0
        while True:
            attempt += 1
            t0 = self._clock()
            try:
                result = await provider.generate(provider_request)
            except (ProviderCallError, httpx.HTTPError) as exc:
                latency_ms = round((self._clock() - t0) * 1000, 2)
                kind = classify_error(exc)
                retry_after = getattr(exc, "retry_after_seconds", None)
                message = str(exc)

                limit = self.policy.max_attempts(kind, max_retries)
                delay = None
                if attempt < limit:
                    delay = self.policy.delay_before_retry(attempt, retry_after, self._rng())

                attempts.append(
                    AttemptRecord(
                        provider=candidate.provider,
                        model=candidate.model,
                        attempt=attempt,
                        kind=kind,
                        message=message,
                        retry_after_seconds=retry_after,
                        delay_seconds=delay or 0.0,
                        latency_ms=latency_ms,
                    )
                )

                if delay is None:
                    if attempt < limit:
                        logger.warning(
                            "AI scope %r: %s asked to wait %ss (over limit), giving up on candidate",
                            self.scope,
                            candidate.label,
                            retry_after,
                        )
                    else:
                        logger.warning(
                            "AI scope %r: %s attempt %d/%d failed with %s: %s",
                            self.scope,
                            candidate.label,
                            attempt,
                            limit,
                            kind.value,
                            message,
                        )
                    return None, _TerminalFailure(kind, message, retry_after)

                logger.info(
                    "AI scope %r: %s attempt %d/%d failed with %s, retrying in %.1fs",
                    self.scope,
                    candidate.label,
                    attempt,
                    limit,
                    kind.value,
                    delay,
                )
                await self._sleep(delay)
                continue

            attempts.append(
                AttemptRecord(
                    provider=candidate.provider,
                    model=candidate.model,
                    attempt=attempt,
                    latency_ms=result.latency_ms,
                )
            )
            return result, None

    def _finish(
        self,
        request: GenerationRequest,
        candidate: Candidate,
        result: ProviderResult,
        attempts: list[AttemptRecord],
        *,
        fallback_used: bool,
    ) -> GenerationSuccess | GenerationUnparsable:
        if request.output_shape is OutputShape.RAW_TEXT:
            payload: Any = result.raw_text
        else:
            try:
                payload = extract_structured(result.raw_text, request.output_shape)
            except ExtractionError as exc:
                logger.warning(
                    "AI scope %r: %s returned unparsable output (%s)",
                    self.scope,
                    candidate.label,
                    exc.kind,
                )
                return GenerationUnparsable(
                    kind=exc.kind,
                    reason=exc.reason,
                    raw_text=result.raw_text,
                    provider=candidate.provider,
                    model=candidate.model,
                    attempts=attempts,
                )

        return GenerationSuccess(
            payload=payload,
            raw_text=result.raw_text,
            provider=candidate.provider,
            model=candidate.model,
            attempts=attempts,
            fallback_used=fallback_used,
        )

    def _exhausted(self, terminal: list[_TerminalFailure], attempts: list[AttemptRecord]) -> GenerationExhausted:
        all_rate_limited = all(f.kind is ErrorKind.RATE_LIMITED for f in terminal)
        supplied = [f.retry_after_seconds for f in terminal if f.retry_after_seconds is not None]
        retry_after = max(supplied) if supplied else self.policy.default_retry_after_seconds
        last = terminal[-1]

        if all_rate_limited and self.breaker is not None:
            self.breaker.trip(max(retry_after, self.policy.breaker_cooldown_seconds), self._clock())

        logger.error(
            "AI scope %r exhausted %d candidate(s); last error %s (all rate limited: %s)",
            self.scope,
            len(terminal),
            last.kind.value,
            all_rate_limited,
        )
        return GenerationExhausted(
            last_error_kind=last.kind,
            all_rate_limited=all_rate_limited,
            retry_after_seconds=retry_after,
            message=last.message,
            attempts=attempts,
        )


def raise_for_outcome(outcome: GenerationOutcome, *, action: str = "generate content") -> Any:
    """Return the payload of a successful outcome, else raise ``AIGenerationError``."""
    if isinstance(outcome, GenerationSuccess):
        return outcome.payload

    if isinstance(outcome, GenerationUnparsable):
        raise AIGenerationError(
            502,
            f"Could not parse AI output while trying to {action}",
            detail=outcome.reason,
        )

    if outcome.all_rate_limited:
        raise AIGenerationError(
            429,
            f"AI quota exceeded. Please try again in {outcome.retry_after_seconds} seconds.",
            retry_after=outcome.retry_after_seconds,
            detail=outcome.message,
        )

    if outcome.last_error_kind is ErrorKind.TIMEOUT:
        raise AIGenerationError(504, "AI request timed out. Please try again.", detail=outcome.message)

    raise AIGenerationError(500, f"Failed to {action}", detail=outcome.message)
