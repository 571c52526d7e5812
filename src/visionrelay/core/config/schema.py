from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

WireFormat = Literal["chat_completion", "inference", "caption", "gemini"]

POLLINATIONS_ENDPOINT = "https://gen.pollinations.ai/v1/chat/completions"
GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
HUGGINGFACE_ENDPOINT = "https://api-inference.huggingface.co/models/{model}"


class InstanceConfig(BaseModel):
    name: str = "visionrelay"


class RuntimeConfig(BaseModel):
    base_backoff_seconds: float = Field(default=1.0, ge=0)
    max_backoff_seconds: float = Field(default=5.0, ge=0)


class TelemetryConfig(BaseModel):
    log_level: str = "INFO"
    json_logs: bool = True


class CredentialsConfig(BaseModel):
    env_vars: dict[str, str] = Field(
        default_factory=lambda: {
            "google": "VISIONRELAY_GOOGLE_API_KEY",
            "openrouter": "VISIONRELAY_OPENROUTER_API_KEY",
            "huggingface": "VISIONRELAY_HUGGINGFACE_API_KEY",
        }
    )


class ProviderEntry(BaseModel):
    name: str
    endpoint: str
    wire_format: WireFormat
    model: str | None = None
    max_retries: int = Field(default=2, ge=0)
    timeout_ms: int = Field(default=30000, gt=0)
    max_tokens: int | None = Field(default=None, gt=0)
    mime_type: str = "image/jpeg"

    @model_validator(mode="after")
    def _check_model(self) -> "ProviderEntry":
        if self.wire_format == "chat_completion" and not self.model:
            raise ValueError(f"provider {self.name}: chat_completion requires a model")
        return self


class CredentialFamily(BaseModel):
    id: str
    auth_type: Literal["bearer", "query"]
    providers: list[ProviderEntry] = Field(default_factory=list)


def _default_base() -> list[ProviderEntry]:
    return [
        ProviderEntry(
            name=f"pollinations-{model}",
            endpoint=POLLINATIONS_ENDPOINT,
            wire_format="chat_completion",
            model=model,
            max_tokens=1000,
        )
        for model in ("openai", "gemini")
    ]


def _gemini(model_id: str, short: str, timeout_ms: int) -> ProviderEntry:
    return ProviderEntry(
        name=f"google-gemini-{short}",
        endpoint=GEMINI_ENDPOINT.format(model=model_id),
        wire_format="gemini",
        model=f"models/{model_id}",
        timeout_ms=timeout_ms,
    )


def _openrouter(model_id: str, short: str, timeout_ms: int) -> ProviderEntry:
    return ProviderEntry(
        name=f"openrouter-{short}",
        endpoint=OPENROUTER_ENDPOINT,
        wire_format="chat_completion",
        model=model_id,
        timeout_ms=timeout_ms,
    )


def _default_families() -> list[CredentialFamily]:
    # Declared fastest-known-latency first within each family.
    return [
        CredentialFamily(
            id="google",
            auth_type="query",
            providers=[
                _gemini("gemini-flash-lite-latest", "flash-lite", 10000),
                _gemini("gemini-2.5-flash-lite", "2.5-flash-lite", 12000),
                _gemini("gemini-flash-latest", "flash", 15000),
                _gemini("gemini-2.5-flash", "2.5-flash", 20000),
            ],
        ),
        CredentialFamily(
            id="openrouter",
            auth_type="bearer",
            providers=[
                _openrouter("allenai/molmo-2-8b:free", "molmo-2-8b", 30000),
                _openrouter("google/gemma-3-12b-it:free", "gemma-3-12b", 35000),
                _openrouter("google/gemma-3-4b-it:free", "gemma-3-4b", 30000),
                _openrouter("qwen/qwen-2.5-vl-7b-instruct:free", "qwen-vl-7b", 35000),
                _openrouter("nvidia/nemotron-nano-12b-v2-vl:free", "nemotron-12b", 35000),
                _openrouter("google/gemma-3-27b-it:free", "gemma-3-27b", 35000),
            ],
        ),
        CredentialFamily(
            id="huggingface",
            auth_type="bearer",
            providers=[
                ProviderEntry(
                    name="huggingface-moondream2",
                    endpoint=HUGGINGFACE_ENDPOINT.format(model="vikhyatk/moondream2"),
                    wire_format="inference",
                    model="vikhyatk/moondream2",
                    max_tokens=500,
                ),
            ],
        ),
    ]


class ProvidersConfig(BaseModel):
    base: list[ProviderEntry] = Field(default_factory=_default_base)
    families: list[CredentialFamily] = Field(default_factory=_default_families)

    @model_validator(mode="after")
    def _check_catalog(self) -> "ProvidersConfig":
        if not self.base:
            raise ValueError("at least one no-auth base provider is required")
        family_ids = [f.id for f in self.families]
        if len(family_ids) != len(set(family_ids)):
            raise ValueError(f"duplicate credential family ids: {family_ids}")
        names = [p.name for p in self.base] + [p.name for f in self.families for p in f.providers]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate provider names: {duplicates}")
        return self


class AppConfig(BaseModel):
    instance: InstanceConfig = Field(default_factory=InstanceConfig)
    environment: str = "dev"
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
