"""Response envelopes of the two supported inference providers.

Cloudflare Workers AI answers a model run with ``{"result": {...}}`` while
OpenRouter answers with an OpenAI-style chat completion. Both are
normalised into a single ``DescriptionResult`` here so the request code
never branches on the provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ValidationError

from ..errors import ParseError


class ProviderKind(str, Enum):
    """Upstream provider, chosen once from configuration."""

    CLOUDFLARE = "cloudflare"
    OPENROUTER = "openrouter"

    @property
    def sends_model_id(self) -> bool:
        # Cloudflare encodes the model in the URL path.
        return self is ProviderKind.OPENROUTER


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class DescriptionResult:
    """Normalised outcome of one completed provider request."""

    text: str
    usage: TokenUsage


class _Usage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def to_usage(self) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens,
            completion_tokens=self.completion_tokens,
            total_tokens=self.total_tokens,
        )


class _CloudflareResult(BaseModel):
    response: str
    usage: _Usage


class CloudflareEnvelope(BaseModel):
    result: _CloudflareResult


class _ResponseMessage(BaseModel):
    content: Optional[str] = None


class _Choice(BaseModel):
    message: _ResponseMessage


class OpenRouterEnvelope(BaseModel):
    choices: List[_Choice]
    usage: _Usage


def _parse(envelope_cls: type[BaseModel], raw: bytes | str) -> BaseModel:
    try:
        return envelope_cls.model_validate_json(raw)
    except ValidationError as exc:
        raise ParseError(f"Unexpected {envelope_cls.__name__} payload: {exc.error_count()} error(s)") from exc


def _result(text: str | None, usage: _Usage) -> DescriptionResult:
    clean = (text or "").strip()
    if not clean:
        raise ParseError("Provider returned an empty description")
    return DescriptionResult(text=clean, usage=usage.to_usage())


class CloudflareAdapter:
    """Shape A: ``{"result": {"response": ..., "usage": {...}}}``."""

    kind = ProviderKind.CLOUDFLARE

    def normalize(self, raw: bytes | str) -> DescriptionResult:
        envelope = _parse(CloudflareEnvelope, raw)
        return _result(envelope.result.response, envelope.result.usage)


class OpenRouterAdapter:
    """Shape B: ``{"choices": [{"message": {"content": ...}}], "usage": {...}}``."""

    kind = ProviderKind.OPENROUTER

    def normalize(self, raw: bytes | str) -> DescriptionResult:
        envelope = _parse(OpenRouterEnvelope, raw)
        if not envelope.choices:
            raise ParseError("Provider returned no choices")
        return _result(envelope.choices[0].message.content, envelope.usage)


ProviderAdapter = CloudflareAdapter | OpenRouterAdapter

_ADAPTERS: dict[ProviderKind, ProviderAdapter] = {
    ProviderKind.CLOUDFLARE: CloudflareAdapter(),
    ProviderKind.OPENROUTER: OpenRouterAdapter(),
}


def adapter_for(kind: ProviderKind | str) -> ProviderAdapter:
    return _ADAPTERS[ProviderKind(kind)]


def normalize(raw: bytes | str, kind: ProviderKind | str) -> DescriptionResult:
    """Parse a raw provider body into a ``DescriptionResult``."""
    return adapter_for(kind).normalize(raw)
