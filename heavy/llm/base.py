"""Base LLM Provider - Abstract interface for LLM providers.

This module defines the abstract base class that all LLM providers must implement.
Providers speak in ``Message`` objects so the rest of the system never sees a
vendor wire format.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from heavy.models import Message


@dataclass
class LLMResponse:
    """Response from an LLM provider.

    ``message`` is None when the backend returned zero choices.
    """

    message: Message | None
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str | None = None
    raw_response: Any = None


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers.

    All LLM providers (OpenRouter, OpenAI, Anthropic, etc.) must implement
    this interface to be used interchangeably by the gateway.
    """

    def __init__(self, api_key: str, **kwargs: Any) -> None:
        """Initialize the LLM provider.

        Args:
            api_key: API key for authentication.
            **kwargs: Additional provider-specific configuration.
        """
        self._api_key = api_key
        self._config = kwargs

    @property
    def has_api_key(self) -> bool:
        """Whether a non-empty API key was supplied or found in the environment."""
        return bool(self._api_key)

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'openrouter', 'anthropic')."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Return the default model for this provider."""
        pass

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send one chat completion request.

        Args:
            messages: Full conversation, system message first.
            tools: OpenAI-format function schemas, or None for no tools.
            model: Model to use. If None, uses default_model.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature (0.0 to 2.0).
            **kwargs: Additional provider-specific parameters.

        Returns:
            LLMResponse containing one assistant message, or none.
        """
        pass

    def get_available_models(self) -> list[str]:
        """Return list of available models for this provider.

        Subclasses should override this to return their specific models.
        """
        return [self.default_model]

    async def health_check(self) -> dict[str, Any]:
        """Check if the provider is healthy and accessible.

        Returns:
            Dictionary with health status information.
        """
        return {
            "provider": self.provider_name,
            "status": "unknown",
        }
