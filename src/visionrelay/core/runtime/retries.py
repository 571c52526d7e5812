from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from tenacity import RetryCallState, retry_if_exception, stop_after_attempt

from visionrelay.core.runtime.errors import is_retryable


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    base_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 5.0

    def backoff_seconds(self, attempt: int) -> float:
        """Delay after the zero-based ``attempt`` failed, before the next try."""
        return min(self.base_backoff_seconds * (2**attempt), self.max_backoff_seconds)

    def wait(self) -> Callable[[RetryCallState], float]:
        return lambda retry_state: self.backoff_seconds(retry_state.attempt_number - 1)

    @staticmethod
    def stop(max_retries: int) -> stop_after_attempt:
        return stop_after_attempt(max(0, max_retries) + 1)

    @staticmethod
    def retry() -> retry_if_exception:
        return retry_if_exception(is_retryable)
