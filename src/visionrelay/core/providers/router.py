from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from time import perf_counter
from typing import Any

import httpx
from tenacity import AsyncRetrying, RetryCallState

from visionrelay.core.config.schema import AppConfig
from visionrelay.core.providers.base import AuthType, CanonicalRequest, CanonicalResult, ProviderConfig
from visionrelay.core.providers.credentials import CredentialLookup
from visionrelay.core.providers.health import HealthTracker
from visionrelay.core.providers.registry import ProviderRegistry
from visionrelay.core.runtime.errors import (
    AllProvidersFailedError,
    HttpStatusError,
    InvalidArgumentError,
    InvalidResponseStructureError,
    MissingCredentialError,
    ProviderTimeoutError,
    ProviderTransportError,
    RateLimitedError,
    classify_error,
    compact_error_summary,
)
from visionrelay.core.runtime.retries import RetryPolicy
from visionrelay.core.runtime.timeouts import run_with_timeout
from visionrelay.core.telemetry.logging import get_logger
from visionrelay.core.telemetry.tracing import AttemptTrace, trace_event

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def resolve_auth(provider: ProviderConfig, credentials: CredentialLookup | None) -> tuple[str, dict[str, str]]:
    """Return the request URL and headers for ``provider``.

    Credentials are attached only when the provider requires auth.
    """
    headers = {"Content-Type": "application/json"}
    if not provider.requires_auth:
        return provider.endpoint, headers

    credential_id = provider.credential_id or provider.name
    key = credentials.get_key(credential_id) if credentials is not None else None
    if not key:
        raise MissingCredentialError(credential_id, provider=provider.name)

    if provider.auth_type is AuthType.BEARER:
        headers["Authorization"] = f"Bearer {key}"
        return provider.endpoint, headers
    if provider.auth_type is AuthType.QUERY:
        return str(httpx.URL(provider.endpoint).copy_add_param("key", key)), headers
    raise ValueError(f"Unsupported auth type for {provider.name}: {provider.auth_type}")


class FailoverRouter:
    """Runs one logical vision request across providers in priority order.

    Providers are tried sequentially. Each gets ``max_retries + 1`` attempts
    with capped exponential backoff between them; an HTTP 429 abandons the
    provider at once. The first parsed response wins. When nothing succeeds
    ``AllProvidersFailedError`` is raised.
    """

    def __init__(
        self,
        providers: Sequence[ProviderConfig],
        credentials: CredentialLookup | None = None,
        *,
        health: HealthTracker | None = None,
        http_client: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not providers:
            raise ValueError("No providers configured")
        names = [p.name for p in providers]
        if len(names) != len(set(names)):
            raise ValueError(f"Provider names must be unique: {names}")

        self._providers: tuple[ProviderConfig, ...] = tuple(providers)
        self.credentials = credentials
        self.health = health or HealthTracker(names)
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._client = http_client
        self._owns_client = http_client is None

        logger.info("failover_router_initialized", providers=names)

    @classmethod
    def from_config(cls, cfg: AppConfig, credentials: CredentialLookup, **kwargs: Any) -> "FailoverRouter":
        providers = ProviderRegistry(cfg.providers).build(credentials)
        kwargs.setdefault(
            "retry_policy",
            RetryPolicy(
                base_backoff_seconds=cfg.runtime.base_backoff_seconds,
                max_backoff_seconds=cfg.runtime.max_backoff_seconds,
            ),
        )
        return cls(providers, credentials, **kwargs)

    @property
    def providers(self) -> tuple[ProviderConfig, ...]:
        return self._providers

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FailoverRouter":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def analyze(self, prompt: str, image: str) -> CanonicalResult:
        request = CanonicalRequest(prompt=prompt, image=image)
        request_id = uuid.uuid4().hex
        attempted: list[str] = []
        rate_limited: list[str] = []
        last_error: BaseException | None = None

        for provider in self._providers:
            logger.info("provider_selected", request_id=request_id, provider=provider.name)
            try:
                return await self._run_provider(provider, request, request_id)
            except RateLimitedError:
                rate_limited.append(provider.name)
            except InvalidArgumentError:
                raise
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                attempted.append(provider.name)
                logger.warning(
                    "provider_exhausted",
                    request_id=request_id,
                    provider=provider.name,
                    error=compact_error_summary(exc),
                )

        logger.error(
            "all_providers_failed",
            request_id=request_id,
            attempted=attempted,
            rate_limited=rate_limited,
            last_error=compact_error_summary(last_error) if last_error else None,
        )
        raise AllProvidersFailedError(attempted, last_error, rate_limited_provider_names=rate_limited)

    async def _run_provider(self, provider: ProviderConfig, request: CanonicalRequest, request_id: str) -> CanonicalResult:
        attempts = 0

        async def attempt_once() -> CanonicalResult:
            nonlocal attempts
            attempts += 1
            return await self._attempt(provider, request, AttemptTrace(request_id, provider.name, attempts))

        def before_sleep(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.info(
                "provider_backoff",
                request_id=request_id,
                provider=provider.name,
                attempt=retry_state.attempt_number,
                max_attempts=provider.max_retries + 1,
                delay_seconds=delay,
            )

        retrying = AsyncRetrying(
            stop=self.retry_policy.stop(provider.max_retries),
            wait=self.retry_policy.wait(),
            retry=self.retry_policy.retry(),
            before_sleep=before_sleep,
            sleep=self._sleep,
            reraise=True,
        )
        return await retrying(attempt_once)

    async def _attempt(self, provider: ProviderConfig, request: CanonicalRequest, ctx: AttemptTrace) -> CanonicalResult:
        started = perf_counter()
        try:
            body = provider.adapter.format_request(request.prompt, request.image)
            url, headers = resolve_auth(provider, self.credentials)
            data = await self._post(provider, url, headers, body)
            parsed = provider.adapter.parse_response(data)
        except Exception as exc:
            self.health.record_failure(provider.name)
            info = classify_error(exc, component=provider.name)
            event = "provider_rate_limited" if isinstance(exc, RateLimitedError) else "provider_attempt_failed"
            trace_event(
                logger,
                ctx,
                event=event,
                status="error",
                extra={
                    "max_attempts": provider.max_retries + 1,
                    "error": compact_error_summary(exc),
                    "error_type": info.error_type,
                    "retryable": info.retryable,
                    "http_status": info.http_status,
                },
            )
            raise

        elapsed_ms = int(round((perf_counter() - started) * 1000))
        self.health.record_success(provider.name)
        trace_event(logger, ctx, event="provider_succeeded", status="ok", extra={"elapsed_ms": elapsed_ms})
        return CanonicalResult(
            content=parsed.content,
            provider_name=provider.name,
            timestamp_utc=datetime.now(timezone.utc),
            elapsed_ms=elapsed_ms,
            attempt_number=ctx.attempt,
        )

    async def _post(self, provider: ProviderConfig, url: str, headers: dict[str, str], body: dict[str, Any]) -> Any:
        timeout_seconds = provider.timeout_ms / 1000
        client = self._get_client()
        try:
            response = await run_with_timeout(
                client.post(url, json=body, headers=headers, timeout=timeout_seconds),
                timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ProviderTimeoutError(provider.timeout_ms, provider=provider.name) from exc
        except httpx.HTTPError as exc:
            raise ProviderTransportError(compact_error_summary(exc), provider=provider.name) from exc

        if response.status_code == 429:
            raise RateLimitedError(provider=provider.name)
        if not response.is_success:
            raise HttpStatusError(response.status_code, response.reason_phrase, provider=provider.name)

        try:
            return response.json()
        except ValueError as exc:
            raise InvalidResponseStructureError("Response body is not valid JSON", provider=provider.name) from exc
