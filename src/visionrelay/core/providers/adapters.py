"""Wire-format adapters.

Each adapter turns ``(prompt, image)`` into a provider-native JSON body and a
decoded provider response back into ``ParsedResponse``. Adapters are pure and
share no state; ``ADAPTER_KINDS`` maps a wire-format name to its constructor.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from visionrelay.core.providers.base import ParsedResponse, ProviderAdapter
from visionrelay.core.runtime.errors import (
    InvalidArgumentError,
    InvalidResponseStructureError,
    ProviderReportedError,
)

_FENCE_RE = re.compile(r"```(?:json)?\n?(.*?)\n?```", re.DOTALL)


def _require_inputs(prompt: str, image: str) -> None:
    if not prompt or not image:
        raise InvalidArgumentError("Prompt and image data are required")


def strip_data_url(image: str) -> str:
    """Return the bare base64 payload of a ``data:...;base64,`` URL."""
    if image.startswith("data:"):
        _, sep, payload = image.partition(",")
        if sep and payload:
            return payload
    return image


def strip_markdown_fence(content: str) -> str:
    match = _FENCE_RE.search(content)
    return match.group(1) if match else content


def _require_body(body: Any, label: str) -> None:
    if body is None:
        raise InvalidResponseStructureError(f"{label} response is required")


@dataclass(frozen=True, slots=True)
class ChatCompletionAdapter:
    """OpenAI-compatible chat completions (Pollinations, OpenRouter)."""

    model: str
    max_tokens: int | None = None

    def format_request(self, prompt: str, image: str) -> dict[str, Any]:
        _require_inputs(prompt, image)
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/jpeg;base64,{strip_data_url(image)}"},
                        },
                    ],
                }
            ],
        }
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload

    def parse_response(self, body: Any) -> ParsedResponse:
        _require_body(body, "Chat completion")
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise InvalidResponseStructureError("Invalid chat completion response structure") from exc
        if not isinstance(content, str):
            raise InvalidResponseStructureError("Chat completion message content is not text")
        return ParsedResponse(content=strip_markdown_fence(content))


@dataclass(frozen=True, slots=True)
class InferenceAdapter:
    """Hugging Face style inference endpoints."""

    max_new_tokens: int = 500

    def format_request(self, prompt: str, image: str) -> dict[str, Any]:
        _require_inputs(prompt, image)
        return {
            "inputs": {"text": prompt, "image": strip_data_url(image)},
            "parameters": {"max_new_tokens": self.max_new_tokens},
        }

    def parse_response(self, body: Any) -> ParsedResponse:
        _require_body(body, "Inference")
        if isinstance(body, dict) and body.get("error"):
            raise ProviderReportedError(f"Inference API error: {body['error']}")
        if isinstance(body, list) and body and isinstance(body[0], dict):
            text = body[0].get("generated_text")
            if isinstance(text, str) and text:
                return ParsedResponse(content=text)
        raise InvalidResponseStructureError("Invalid inference response structure")


@dataclass(frozen=True, slots=True)
class CaptionAdapter:
    """Caption-only services; the caption is returned verbatim."""

    def format_request(self, prompt: str, image: str) -> dict[str, Any]:
        _require_inputs(prompt, image)
        return {"image": strip_data_url(image), "prompt": prompt}

    def parse_response(self, body: Any) -> ParsedResponse:
        _require_body(body, "Caption")
        caption = body.get("caption") if isinstance(body, dict) else None
        if not isinstance(caption, str) or not caption:
            raise InvalidResponseStructureError("Invalid caption response structure")
        return ParsedResponse(content=caption)


@dataclass(frozen=True, slots=True)
class GeminiAdapter:
    """Google Gemini ``generateContent``."""

    model: str | None = None
    mime_type: str = "image/jpeg"

    def format_request(self, prompt: str, image: str) -> dict[str, Any]:
        _require_inputs(prompt, image)
        return {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"inline_data": {"mime_type": self.mime_type, "data": strip_data_url(image)}},
                    ]
                }
            ]
        }

    def parse_response(self, body: Any) -> ParsedResponse:
        _require_body(body, "Gemini")
        try:
            candidate = body["candidates"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise InvalidResponseStructureError("Invalid Gemini response structure") from exc
        try:
            text = candidate["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise InvalidResponseStructureError("Invalid Gemini content structure") from exc
        if not isinstance(text, str):
            raise InvalidResponseStructureError("Gemini part text is not text")
        return ParsedResponse(content=strip_markdown_fence(text))


def _chat(model: str | None, max_tokens: int | None, mime_type: str) -> ProviderAdapter:
    if not model:
        raise ValueError("chat_completion adapter requires a model")
    return ChatCompletionAdapter(model=model, max_tokens=max_tokens)


ADAPTER_KINDS: dict[str, Callable[[str | None, int | None, str], ProviderAdapter]] = {
    "chat_completion": _chat,
    "inference": lambda model, max_tokens, mime_type: InferenceAdapter(max_new_tokens=max_tokens or 500),
    "caption": lambda model, max_tokens, mime_type: CaptionAdapter(),
    "gemini": lambda model, max_tokens, mime_type: GeminiAdapter(model=model, mime_type=mime_type),
}


def build_adapter(wire_format: str, *, model: str | None = None, max_tokens: int | None = None, mime_type: str = "image/jpeg") -> ProviderAdapter:
    factory = ADAPTER_KINDS.get(wire_format)
    if factory is None:
        available = ", ".join(sorted(ADAPTER_KINDS))
        raise ValueError(f"Unknown wire format '{wire_format}'. Available: {available}")
    return factory(model, max_tokens, mime_type)
