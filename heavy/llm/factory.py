"""LLM Provider Factory.

This module provides factory functions for creating LLM provider instances
and wiring them into a gateway from application config.
"""

from __future__ import annotations

import os
from typing import Any

from heavy.llm.anthropic import AnthropicProvider
from heavy.llm.base import BaseLLMProvider
from heavy.llm.gateway import LLMGateway
from heavy.llm.openrouter import OpenAIProvider, OpenRouterProvider
from heavy.utils.config import AppConfig
from heavy.utils.exceptions import MissingConfigurationError


class LLMProviderFactory:
    """Factory for creating LLM provider instances.

    Supports creating providers by name with automatic configuration
    from environment variables.
    """

    # Registry of available providers
    _providers: dict[str, type[BaseLLMProvider]] = {
        "openrouter": OpenRouterProvider,
        "openai": OpenAIProvider,
        "anthropic": AnthropicProvider,
    }

    _env_keys: dict[str, str] = {
        "openrouter": "OPENROUTER_API_KEY",
        "openai": "OPENAI_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
    }

    @classmethod
    def register_provider(
        cls,
        name: str,
        provider_class: type[BaseLLMProvider],
    ) -> None:
        """Register a new LLM provider.

        Args:
            name: Provider name (e.g., 'groq').
            provider_class: Provider class implementing BaseLLMProvider.
        """
        cls._providers[name] = provider_class

    @classmethod
    def create(
        cls,
        provider: str | None = None,
        model: str | None = None,
        api_key: str | None = None,
        **kwargs: Any,
    ) -> BaseLLMProvider:
        """Create an LLM provider instance.

        Args:
            provider: Provider name. Defaults to 'openrouter'.
            model: Default model for the provider.
            api_key: API key. If None, reads from environment.
            **kwargs: Additional provider-specific configuration.

        Returns:
            BaseLLMProvider instance.

        Raises:
            ValueError: If the provider is unknown.
        """
        provider = provider or "openrouter"

        if provider not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise ValueError(f"Unknown provider: {provider}. Available: {available}")

        if api_key is None:
            env_var = cls._env_keys.get(provider, f"{provider.upper()}_API_KEY")
            api_key = os.getenv(env_var)

        provider_class = cls._providers[provider]
        return provider_class(api_key=api_key, model=model, **kwargs)

    @classmethod
    def list_providers(cls) -> list[str]:
        """List all registered provider names."""
        return list(cls._providers.keys())


def get_provider(
    provider: str | None = None,
    model: str | None = None,
    api_key: str | None = None,
    **kwargs: Any,
) -> BaseLLMProvider:
    """Convenience function to create an LLM provider.

    This is a shortcut for LLMProviderFactory.create().
    """
    return LLMProviderFactory.create(
        provider=provider,
        model=model,
        api_key=api_key,
        **kwargs,
    )


def create_gateway(config: AppConfig) -> LLMGateway:
    """Build the gateway described by ``config.llm`` and ``config.retry``.

    Raises:
        MissingConfigurationError: If no API key is available.
    """
    llm = config.llm
    provider = LLMProviderFactory.create(
        provider=llm.provider.value,
        model=llm.model,
        api_key=llm.api_key or None,
        base_url=llm.base_url,
        timeout=llm.request_timeout,
    )
    if not provider.has_api_key:
        raise MissingConfigurationError(
            "llm.api_key",
            "No LLM API key configured. Set OPENROUTER_API_KEY or llm.api_key.",
        )

    return LLMGateway(
        provider,
        retry=config.retry,
        model=llm.model or provider.default_model,
        temperature=llm.temperature,
        max_tokens=llm.max_tokens,
    )
