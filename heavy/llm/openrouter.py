"""OpenAI-compatible LLM providers.

OpenRouter (the default backend) and OpenAI both speak the chat completions
protocol, so they share one implementation over ``openai.AsyncOpenAI``.
"""

from __future__ import annotations

import os
from typing import Any

from openai import AsyncOpenAI

from heavy.llm.base import BaseLLMProvider, LLMResponse
from heavy.models import Message, ToolCall


class OpenAICompatibleProvider(BaseLLMProvider):
    """Chat completions provider for any OpenAI-compatible endpoint."""

    BASE_URL: str | None = None
    API_KEY_ENV = "OPENAI_API_KEY"
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: API key. If None, reads from the provider's env var.
            base_url: Optional custom base URL.
            model: Optional default model override.
            timeout: Optional per-request timeout in seconds.
            **kwargs: Additional configuration.
        """
        resolved_api_key = api_key or os.getenv(self.API_KEY_ENV, "")
        super().__init__(api_key=resolved_api_key, **kwargs)

        self._base_url = base_url or self.BASE_URL
        self._model = model or self.DEFAULT_MODEL

        client_kwargs: dict[str, Any] = {"api_key": resolved_api_key}
        if self._base_url:
            client_kwargs["base_url"] = self._base_url
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._async_client = AsyncOpenAI(**client_kwargs)

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send a chat completion request with optional tools."""
        request_params: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": [m.to_openai() for m in messages],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if tools:
            request_params["tools"] = tools
            request_params["tool_choice"] = "auto"
        request_params.update(kwargs)

        response = await self._async_client.chat.completions.create(**request_params)

        usage: dict[str, int] = {}
        if response.usage:
            usage = {
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
            }

        if not response.choices:
            return LLMResponse(
                message=None,
                model=response.model,
                usage=usage,
                raw_response=response,
            )

        choice = response.choices[0]
        return LLMResponse(
            message=self._to_message(choice.message),
            model=response.model,
            usage=usage,
            finish_reason=choice.finish_reason,
            raw_response=response,
        )

    @staticmethod
    def _to_message(raw: Any) -> Message:
        tool_calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=call.function.arguments or "{}",
            )
            for call in (raw.tool_calls or [])
        ]
        return Message.assistant(content=raw.content or "", tool_calls=tool_calls)

    async def health_check(self) -> dict[str, Any]:
        """Check if the endpoint is accessible."""
        try:
            response = await self._async_client.chat.completions.create(
                model=self.default_model,
                messages=[{"role": "user", "content": "Hi"}],
                max_tokens=10,
            )
            return {
                "provider": self.provider_name,
                "status": "healthy",
                "model": response.model,
            }
        except Exception as e:
            return {
                "provider": self.provider_name,
                "status": "unhealthy",
                "error": str(e),
            }


class OpenRouterProvider(OpenAICompatibleProvider):
    """OpenRouter provider, the default backend."""

    BASE_URL = "https://openrouter.ai/api/v1"
    API_KEY_ENV = "OPENROUTER_API_KEY"
    DEFAULT_MODEL = "moonshotai/kimi-k2"

    @property
    def provider_name(self) -> str:
        return "openrouter"


class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI API provider."""

    AVAILABLE_MODELS = [
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-4.1",
        "gpt-4.1-mini",
    ]

    def get_available_models(self) -> list[str]:
        return self.AVAILABLE_MODELS.copy()
