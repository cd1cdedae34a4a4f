"""LLM Provider abstraction layer.

This module provides a unified interface for multiple LLM providers
and the retrying gateway used by the orchestration core.
"""

from heavy.llm.base import BaseLLMProvider, LLMResponse
from heavy.llm.anthropic import AnthropicProvider
from heavy.llm.openrouter import (
    OpenAICompatibleProvider,
    OpenAIProvider,
    OpenRouterProvider,
)
from heavy.llm.gateway import LLMGateway
from heavy.llm.factory import LLMProviderFactory, create_gateway, get_provider

__all__ = [
    "BaseLLMProvider",
    "LLMResponse",
    "AnthropicProvider",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "LLMGateway",
    "LLMProviderFactory",
    "create_gateway",
    "get_provider",
]
