from __future__ import annotations

import re
from dataclasses import dataclass


class VisionRelayError(Exception):
    """Base class for every error raised by visionrelay."""


class InvalidArgumentError(VisionRelayError, ValueError):
    pass


class ProviderError(VisionRelayError):
    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {super().__str__()}"
        return super().__str__()


class InvalidResponseStructureError(ProviderError):
    pass


class ProviderReportedError(ProviderError):
    pass


class MissingCredentialError(ProviderError):
    def __init__(self, credential_id: str, provider: str | None = None) -> None:
        self.credential_id = credential_id
        super().__init__(f"API key for '{credential_id}' required but not configured", provider=provider)


class HttpStatusError(ProviderError):
    def __init__(self, status: int, reason: str = "", provider: str | None = None) -> None:
        self.status = status
        message = f"HTTP {status}: {reason}" if reason else f"HTTP {status}"
        super().__init__(message, provider=provider)


class RateLimitedError(HttpStatusError):
    def __init__(self, provider: str | None = None) -> None:
        super().__init__(429, "rate limited", provider=provider)


class ProviderTimeoutError(ProviderError):
    def __init__(self, timeout_ms: int, provider: str | None = None) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"timed out after {timeout_ms}ms", provider=provider)


class ProviderTransportError(ProviderError):
    pass


class AllProvidersFailedError(VisionRelayError):
    """Raised by ``FailoverRouter.analyze`` once every provider is exhausted.

    ``attempted_provider_names`` lists the providers that ran out of retries,
    in the order they were tried. Providers abandoned on HTTP 429 are listed
    separately in ``rate_limited_provider_names``.
    """

    def __init__(
        self,
        attempted_provider_names: list[str],
        last_error: BaseException | None,
        rate_limited_provider_names: list[str] | None = None,
    ) -> None:
        self.attempted_provider_names = list(attempted_provider_names)
        self.rate_limited_provider_names = list(rate_limited_provider_names or [])
        self.last_error = last_error
        self.last_error_message = str(last_error) if last_error is not None else "Unknown"
        super().__init__(
            f"All vision providers failed after trying: {', '.join(self.attempted_provider_names) or 'none'}. "
            f"Last error: {self.last_error_message}"
        )


@dataclass(slots=True)
class ErrorInfo:
    component: str
    error_type: str
    message_signature: str
    retryable: bool
    http_status: int | None = None


def _normalize_message(message: str, max_len: int = 180) -> str:
    msg = message.lower()
    msg = re.sub(r"\s+", " ", msg)
    msg = re.sub(r"\d+", "#", msg)
    return msg.strip()[:max_len]


def _compact_message(message: str, max_len: int = 220) -> str:
    msg = re.sub(r"\s+", " ", message)
    return msg.strip()[:max_len]


def is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, Exception):
        return False
    return not isinstance(exc, (RateLimitedError, InvalidArgumentError))


def classify_error(exc: BaseException, *, component: str) -> ErrorInfo:
    status = exc.status if isinstance(exc, HttpStatusError) else None
    return ErrorInfo(
        component=component,
        error_type=exc.__class__.__name__,
        message_signature=_normalize_message(str(exc)),
        retryable=is_retryable(exc),
        http_status=status,
    )


def compact_error_summary(exc: BaseException, max_len: int = 220) -> str:
    return f"{exc.__class__.__name__}: {_compact_message(str(exc), max_len=max_len)}"
