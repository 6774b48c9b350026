# src/llm/client_factory.py — v1
"""Factory: instantiate an LLM client for a model and credential."""

from __future__ import annotations

import logging

from iacdiagram.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


_PROVIDERS = ("anthropic",)


def create_llm_client(
    model: str,
    api_key: str,
    provider: str = "anthropic",
) -> BaseLLMClient:
    """Instantiate the adapter for `provider`.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDERS:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. Available: {', '.join(_PROVIDERS)}"
        )
    from iacdiagram.llm.adapters.anthropic_adapter import AnthropicAdapter

    logger.debug("Creating %s client for model %s", provider, model)
    return AnthropicAdapter(model=model, api_key=api_key)
