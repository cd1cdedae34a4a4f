"""Anthropic LLM Provider implementation.

This module provides the Anthropic Claude API integration, translating the
OpenAI-shaped conversation into Claude content blocks and back.
"""

from __future__ import annotations

import json
import os
from typing import Any

import anthropic

from heavy.llm.base import BaseLLMProvider, LLMResponse
from heavy.models import Message, Role, ToolCall


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude API provider."""

    AVAILABLE_MODELS = [
        "claude-opus-4-20250514",
        "claude-sonnet-4-20250514",
        "claude-haiku-4-5-20251001",
        "claude-3-5-haiku-20241022",
    ]

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the Anthropic provider.

        Args:
            api_key: Anthropic API key. If None, reads from ANTHROPIC_API_KEY env var.
            base_url: Optional custom base URL for the API.
            model: Optional default model override.
            timeout: Optional per-request timeout in seconds.
            **kwargs: Additional configuration.
        """
        resolved_api_key = api_key or os.getenv("ANTHROPIC_API_KEY", "")
        super().__init__(api_key=resolved_api_key, **kwargs)

        self._model = model or "claude-haiku-4-5-20251001"
        client_kwargs: dict[str, Any] = {"api_key": resolved_api_key, "base_url": base_url}
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self._async_client = anthropic.AsyncAnthropic(**client_kwargs)

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "anthropic"

    @property
    def default_model(self) -> str:
        """Return the default model."""
        return self._model

    def get_available_models(self) -> list[str]:
        """Return list of available Anthropic models."""
        return self.AVAILABLE_MODELS.copy()

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send a messages request to Anthropic.

        Args:
            messages: Conversation in internal format.
            tools: OpenAI-format function schemas.
            model: Model to use. If None, uses default_model.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.
            **kwargs: Additional Anthropic-specific parameters.

        Returns:
            LLMResponse with text and tool_use blocks folded into one Message.
        """
        system_prompt, chat_messages = self._convert_messages(messages)

        request_params: dict[str, Any] = {
            "model": model or self.default_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": chat_messages,
        }
        if system_prompt:
            request_params["system"] = system_prompt
        if tools:
            request_params["tools"] = self._convert_tools(tools)
        request_params.update(kwargs)

        response = await self._async_client.messages.create(**request_params)

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(id=block.id, name=block.name, arguments=dict(block.input))
                )

        return LLMResponse(
            message=Message.assistant(content="".join(text_parts), tool_calls=tool_calls),
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            finish_reason=response.stop_reason,
            raw_response=response,
        )

    @staticmethod
    def _convert_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        converted = []
        for tool in tools:
            if tool.get("type") != "function":
                continue
            func = tool["function"]
            converted.append(
                {
                    "name": func["name"],
                    "description": func.get("description", ""),
                    "input_schema": func.get(
                        "parameters", {"type": "object", "properties": {}}
                    ),
                }
            )
        return converted

    @staticmethod
    def _convert_messages(
        messages: list[Message],
    ) -> tuple[str, list[dict[str, Any]]]:
        """Split out the system prompt and build Claude content blocks.

        Consecutive tool results are merged into one user turn, since Claude
        requires alternating roles.
        """
        system_parts: list[str] = []
        converted: list[dict[str, Any]] = []

        for message in messages:
            if message.role == Role.SYSTEM:
                system_parts.append(message.content)
                continue

            if message.role == Role.TOOL:
                block = {
                    "type": "tool_result",
                    "tool_use_id": message.tool_call_id,
                    "content": message.content,
                }
                previous = converted[-1] if converted else None
                if (
                    previous
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(b.get("type") == "tool_result" for b in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})
                continue

            if message.role == Role.ASSISTANT and message.tool_calls:
                blocks: list[dict[str, Any]] = []
                if message.content:
                    blocks.append({"type": "text", "text": message.content})
                for call in message.tool_calls:
                    arguments = call.arguments
                    if isinstance(arguments, str):
                        try:
                            arguments = json.loads(arguments or "{}")
                        except json.JSONDecodeError:
                            arguments = {"raw": arguments}
                    blocks.append(
                        {
                            "type": "tool_use",
                            "id": call.id,
                            "name": call.name,
                            "input": arguments,
                        }
                    )
                converted.append({"role": "assistant", "content": blocks})
                continue

            converted.append({"role": message.role.value, "content": message.content})

        return "\n\n".join(p for p in system_parts if p), converted

    async def health_check(self) -> dict[str, Any]:
        """Check if the Anthropic API is accessible."""
        try:
            response = await self._async_client.messages.create(
                model=self.default_model,
                max_tokens=10,
                messages=[{"role": "user", "content": "Hi"}],
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
