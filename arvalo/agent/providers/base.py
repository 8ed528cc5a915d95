"""Base provider interface and factory for LLM adapters.

Every provider adapter implements `LLMAdapter`: one completion call that
takes the full conversation plus tool schemas and returns a provider-neutral
Completion, and an optional vision call used for receipt OCR. The factory
function `create_provider()` reads config and returns the right one.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from arvalo.agent.errors import ProviderError
from arvalo.agent.types import Completion, CompletionRequest

logger = logging.getLogger(__name__)

RETRIABLE_STATUS_CODES = {408, 409, 429, 500, 502, 503, 504, 529}


class LLMAdapter(ABC):
    """Abstract interface that every provider adapter must satisfy."""

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> Completion:
        """Send conversation + tool schemas, get back a Completion.

        Implementations raise ProviderError for API failures, with
        `retriable` set for rate limits, connection problems and 5xx.
        """
        ...

    async def vision(
        self,
        image_bytes: bytes,
        prompt: str,
        *,
        media_type: Optional[str] = None,
    ) -> str:
        """Extract text from an image using the provider's vision model.

        Default implementation raises NotImplementedError; providers that
        support vision override this.
        """
        raise NotImplementedError(f"{self.__class__.__name__} does not support vision")


def provider_error(exc: Exception, *, status_code: Optional[int] = None, connection: bool = False) -> ProviderError:
    """Wrap an SDK exception, deciding whether the loop may retry it."""
    retriable = connection or (status_code in RETRIABLE_STATUS_CODES)
    prefix = f"HTTP {status_code}: " if status_code else ""
    return ProviderError(f"{prefix}{exc}", retriable=retriable)


def detect_media_type(image_bytes: bytes) -> str:
    """Detect image format from magic bytes."""
    if image_bytes[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:3] == b"GIF":
        return "image/gif"
    return "image/png"


def create_provider(
    provider_name: str = "anthropic",
    **kwargs,
) -> LLMAdapter:
    """Factory: create a provider adapter by name.

    Args:
        provider_name: "anthropic" or "openai"
        **kwargs: Forwarded to the adapter constructor (api_key, etc.)
    """
    name = provider_name.lower().strip()

    if name == "anthropic":
        from arvalo.agent.providers.anthropic_adapter import AnthropicAdapter
        return AnthropicAdapter(**kwargs)
    elif name == "openai":
        from arvalo.agent.providers.openai_adapter import OpenAIAdapter
        return OpenAIAdapter(**kwargs)
    else:
        raise ValueError(f"Unknown provider: {provider_name!r} (expected anthropic or openai)")


def create_provider_from_config(config=None) -> LLMAdapter:
    """Build an LLMAdapter from app settings, or from the given Settings."""
    if config is None:
        from arvalo.config import settings as config

    return create_provider(
        config.agent_provider,
        api_key=_pick_key(config, config.agent_provider),
    )


def default_model_for(settings, provider: str) -> str:
    """The model name agents should request from the configured provider."""
    if provider == "openai":
        return settings.openai_model
    return settings.anthropic_model


def _pick_key(settings, provider: str) -> Optional[str]:
    if provider == "openai":
        return settings.openai_api_key
    if provider == "anthropic":
        return settings.anthropic_api_key
    return None
