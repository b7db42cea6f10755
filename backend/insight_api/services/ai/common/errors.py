"""Provider error taxonomy, classification and retry-after parsing."""

from __future__ import annotations

import enum
import math
import re
from typing import Any, Mapping

import httpx


class ErrorKind(str, enum.Enum):
    """Closed set of failure kinds every provider error is mapped onto."""

    RATE_LIMITED = "rate_limited"
    OVERLOADED = "overloaded"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    UNKNOWN = "unknown"


STATUS_CODE_KINDS: dict[int, ErrorKind] = {
    429: ErrorKind.RATE_LIMITED,
    503: ErrorKind.OVERLOADED,
    502: ErrorKind.OVERLOADED,
    404: ErrorKind.NOT_FOUND,
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.BAD_REQUEST,
    403: ErrorKind.BAD_REQUEST,
    408: ErrorKind.TIMEOUT,
    504: ErrorKind.TIMEOUT,
}

STATUS_TEXT_KINDS: dict[str, ErrorKind] = {
    "RESOURCE_EXHAUSTED": ErrorKind.RATE_LIMITED,
    "UNAVAILABLE": ErrorKind.OVERLOADED,
    "NOT_FOUND": ErrorKind.NOT_FOUND,
    "INVALID_ARGUMENT": ErrorKind.BAD_REQUEST,
    "PERMISSION_DENIED": ErrorKind.BAD_REQUEST,
    "UNAUTHENTICATED": ErrorKind.BAD_REQUEST,
    "DEADLINE_EXCEEDED": ErrorKind.TIMEOUT,
}

# Last resort: SDKs disagree on error shapes, so fall back to message text.
MESSAGE_KINDS: tuple[tuple[str, ErrorKind], ...] = (
    ("429", ErrorKind.RATE_LIMITED),
    ("quota", ErrorKind.RATE_LIMITED),
    ("rate limit", ErrorKind.RATE_LIMITED),
    ("overloaded", ErrorKind.OVERLOADED),
    ("not found", ErrorKind.NOT_FOUND),
)

_RETRY_IN_RE = re.compile(r"retry in\s+(\d+(?:\.\d+)?)\s*s", re.IGNORECASE)
_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*s?\s*$")


class ProviderCallError(Exception):
    """Raised by provider adapters for an expected provider failure.

    ``kind`` is only preset when the failure never produced an HTTP
    response (timeouts, connection errors); otherwise the client classifies
    from ``status_code`` / ``status`` / message.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        status: str | None = None,
        retry_after_seconds: int | None = None,
        kind: ErrorKind | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.status = status
        self.retry_after_seconds = retry_after_seconds
        self.kind = kind


class ExtractionError(Exception):
    """Model output could not be turned into structured JSON."""

    NO_DELIMITERS = "no_delimiters"
    PARSE_FAILED = "parse_failed"

    def __init__(self, kind: str, reason: str) -> None:
        super().__init__(f"{kind}: {reason}")
        self.kind = kind
        self.reason = reason


class MissingCredentialError(Exception):
    """No candidate for a scope has a configured API key."""

    def __init__(self, scope: str, providers: list[str]) -> None:
        names = ", ".join(sorted(set(providers))) or "none"
        super().__init__(f"No API key configured for scope {scope!r} (providers: {names})")
        self.scope = scope
        self.providers = providers


class AIGenerationError(Exception):
    """HTTP-facing failure raised by services when generation did not succeed."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        retry_after: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.retry_after = retry_after
        self.detail = detail


def classify(
    status_code: int | None = None,
    status: str | None = None,
    message: str | None = None,
) -> ErrorKind:
    """Map a provider error onto ``ErrorKind``; first matching rule wins."""
    if status_code is not None and status_code in STATUS_CODE_KINDS:
        return STATUS_CODE_KINDS[status_code]

    if status:
        kind = STATUS_TEXT_KINDS.get(str(status).strip().upper())
        if kind is not None:
            return kind

    text = (message or "").lower()
    for needle, kind in MESSAGE_KINDS:
        if needle in text:
            return kind

    return ErrorKind.UNKNOWN


def classify_error(exc: BaseException) -> ErrorKind:
    if isinstance(exc, ProviderCallError):
        if exc.kind is not None:
            return exc.kind
        return classify(exc.status_code, exc.status, exc.message)
    if isinstance(exc, httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.TransportError):
        return ErrorKind.TRANSPORT
    return classify(None, None, str(exc))


def _ceil_seconds(raw: Any) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        match = _DURATION_RE.match(str(raw))
        if not match:
            return None
        value = float(match.group(1))
    if value < 0:
        return None
    return int(math.ceil(value))


def parse_retry_after(
    message: str | None = None,
    details: Any = None,
    headers: Mapping[str, str] | None = None,
) -> int | None:
    """Return the provider-requested wait in whole seconds (ceiling), if any.

    Checked in order: Google ``RetryInfo.retryDelay`` entries in ``details``,
    a numeric ``Retry-After`` header, then ``"retry in 12.5s"`` in the message.
    """
    if isinstance(details, list):
        for item in details:
            if isinstance(item, dict) and "retryDelay" in item:
                seconds = _ceil_seconds(item.get("retryDelay"))
                if seconds is not None:
                    return seconds

    if headers:
        seconds = _ceil_seconds(headers.get("retry-after") or headers.get("Retry-After"))
        if seconds is not None:
            return seconds

    if message:
        match = _RETRY_IN_RE.search(message)
        if match:
            return int(math.ceil(float(match.group(1))))

    return None


def error_from_payload(
    payload: Any,
    *,
    status_code: int | None = None,
    headers: Mapping[str, str] | None = None,
) -> ProviderCallError:
    """Build a ``ProviderCallError`` from a ``{"error": {...}}`` style body."""
    error = payload.get("error") if isinstance(payload, dict) else None
    message = ""
    status = None
    details = None
    code = status_code

    if isinstance(error, dict):
        message = str(error.get("message") or "")
        status = error.get("status")
        details = error.get("details")
        raw_code = error.get("code")
        if code is None or code < 400:
            try:
                code = int(raw_code) if raw_code is not None else code
            except (TypeError, ValueError):
                # Some gateways send a string code such as "rate_limit_exceeded".
                message = f"{raw_code}: {message}" if message else str(raw_code)
        metadata = error.get("metadata")
        if isinstance(metadata, dict) and metadata.get("raw"):
            message = f"{message} ({metadata['raw']})" if message else str(metadata["raw"])
    elif isinstance(error, str):
        message = error

    if not message:
        message = f"Provider returned HTTP {status_code}" if status_code else "Provider returned an error"

    return ProviderCallError(
        message,
        status_code=code,
        status=status,
        retry_after_seconds=parse_retry_after(message, details, headers),
    )


def error_from_response(resp: httpx.Response) -> ProviderCallError:
    try:
        payload = resp.json()
    except ValueError:
        payload = {"error": {"message": resp.text[:500]}}
    return error_from_payload(payload, status_code=resp.status_code, headers=resp.headers)
