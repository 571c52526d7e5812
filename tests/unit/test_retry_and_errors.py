from __future__ import annotations

import asyncio
from types import SimpleNamespace

from visionrelay.core.runtime.errors import (
    AllProvidersFailedError,
    HttpStatusError,
    InvalidArgumentError,
    InvalidResponseStructureError,
    MissingCredentialError,
    ProviderTimeoutError,
    RateLimitedError,
    classify_error,
    compact_error_summary,
)
from visionrelay.core.runtime.retries import RetryPolicy


def test_backoff_doubles_from_one_second_and_caps_at_five():
    policy = RetryPolicy()
    assert [policy.backoff_seconds(a) for a in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]


def test_tenacity_wait_uses_the_same_backoff():
    policy = RetryPolicy(base_backoff_seconds=0.5, max_backoff_seconds=3.0)
    wait = policy.wait()
    delays = [wait(SimpleNamespace(attempt_number=n)) for n in range(1, 6)]
    assert delays == [policy.backoff_seconds(a) for a in range(5)] == [0.5, 1.0, 2.0, 3.0, 3.0]


def test_classification_of_retryable_errors():
    assert classify_error(HttpStatusError(503, provider="p1"), component="p1").retryable is True
    assert classify_error(ProviderTimeoutError(1000, provider="p1"), component="p1").retryable is True
    assert classify_error(InvalidResponseStructureError("bad"), component="p1").retryable is True
    assert classify_error(MissingCredentialError("google"), component="p1").retryable is True

    info = classify_error(RateLimitedError(provider="p1"), component="p1")
    assert info.retryable is False
    assert info.http_status == 429
    assert classify_error(InvalidArgumentError("empty prompt"), component="p1").retryable is False
    assert classify_error(asyncio.CancelledError(), component="p1").retryable is False


def test_provider_errors_carry_provider_name():
    err = HttpStatusError(502, "Bad Gateway", provider="p1")
    assert str(err) == "[p1] HTTP 502: Bad Gateway"
    assert compact_error_summary(err) == "HttpStatusError: [p1] HTTP 502: Bad Gateway"


def test_all_providers_failed_message_without_last_error():
    err = AllProvidersFailedError([], None, rate_limited_provider_names=["p1"])
    assert err.last_error_message == "Unknown"
    assert err.rate_limited_provider_names == ["p1"]
    assert "Last error: Unknown" in str(err)
