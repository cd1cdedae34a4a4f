"""LLM Gateway - one assistant turn per call, with retry and backoff.

The gateway is the only path from agents, the decomposer and the aggregator to
a remote model. Transient failures (network errors, timeouts, malformed or
empty responses) are retried with exponential backoff; the caller only sees a
``GatewayError`` once the retry budget is spent.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from heavy.llm.base import BaseLLMProvider
from heavy.models import Message
from heavy.utils.config import RetryConfig
from heavy.utils.exceptions import EmptyResponseError, GatewayError
from heavy.utils.logging import get_logger

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class LLMGateway:
    """Retrying front door to an LLM provider.

    Attributes:
        provider: The underlying provider.
        retry: Backoff policy. Total attempts are ``max_retries + 1``.
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        retry: RetryConfig | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.retry = retry or RetryConfig()
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.retry.max_retries + 1

    async def complete(
        self,
        conversation: list[Message],
        tool_schemas: list[dict[str, Any]] | None = None,
    ) -> Message:
        """Return the model's next assistant message.

        Args:
            conversation: Ordered messages, system message first.
            tool_schemas: Tools the model may call, or None.

        Returns:
            The assistant Message (text and/or tool calls).

        Raises:
            GatewayError: When every attempt failed.
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self.provider.complete(
                    conversation,
                    tools=tool_schemas or None,
                    model=self.model,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                )
                if response.message is None:
                    raise EmptyResponseError(response.model)
                if attempt > 1:
                    logger.info(
                        "LLM call succeeded after retry",
                        provider=self.provider.provider_name,
                        attempt=attempt,
                    )
                return response.message
            except Exception as e:
                last_error = e
                if attempt >= self.max_attempts:
                    break

                delay = self.retry.delay_for(attempt)
                logger.warning(
                    "LLM call failed, retrying",
                    provider=self.provider.provider_name,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    delay_seconds=delay,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                await self._sleep(delay)

        logger.error(
            "LLM call failed, retries exhausted",
            provider=self.provider.provider_name,
            attempts=self.max_attempts,
            error=str(last_error),
        )
        raise GatewayError(
            f"LLM call failed after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
            provider=self.provider.provider_name,
            cause=last_error,
        ) from last_error
