from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from visionrelay.core.runtime.errors import InvalidArgumentError


class AuthType(str, Enum):
    NONE = "none"
    BEARER = "bearer"
    QUERY = "query"


@dataclass(frozen=True, slots=True)
class ParsedResponse:
    content: str


@runtime_checkable
class ProviderAdapter(Protocol):
    """Translates between the canonical request/result and one wire format."""

    def format_request(self, prompt: str, image: str) -> dict[str, Any]: ...

    def parse_response(self, body: Any) -> ParsedResponse: ...


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    name: str
    endpoint: str
    adapter: ProviderAdapter
    max_retries: int = 2
    timeout_ms: int = 30000
    requires_auth: bool = False
    auth_type: AuthType = AuthType.NONE
    model: str | None = None
    credential_id: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("provider name cannot be empty")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {self.timeout_ms}")
        if self.requires_auth and (self.auth_type is AuthType.NONE or not self.credential_id):
            raise ValueError(f"provider {self.name} requires auth but has no auth_type/credential_id")


@dataclass(frozen=True, slots=True)
class CanonicalRequest:
    prompt: str
    image: str

    def __post_init__(self) -> None:
        if not self.prompt:
            raise InvalidArgumentError("Prompt is required")
        if not self.image:
            raise InvalidArgumentError("Image data is required")


@dataclass(frozen=True, slots=True)
class CanonicalResult:
    content: str
    provider_name: str
    timestamp_utc: datetime
    elapsed_ms: int
    attempt_number: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "provider": self.provider_name,
            "timestamp": self.timestamp_utc.isoformat(),
            "elapsed_ms": self.elapsed_ms,
            "attempt": self.attempt_number,
        }
