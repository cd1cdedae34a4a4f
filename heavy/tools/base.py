"""Tool definitions and dispatch outcomes.

A ``Tool`` pairs a handler with the JSON schema the model sees. Dispatch never
raises; it returns a ``ToolOutcome`` that is either ok (carrying the handler's
value) or an error (carrying a message).
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

ToolHandler = Callable[..., Any | Awaitable[Any]]


@dataclass
class Tool:
    """A named, schema-described callable exposed to the model."""

    name: str
    handler: ToolHandler
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    description: str = ""

    def to_openai_format(self) -> dict[str, Any]:
        """Return the OpenAI function-calling schema for this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class ToolOutcome:
    """Result of dispatching one tool call."""

    success: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, value: Any) -> ToolOutcome:
        return cls(success=True, value=value)

    @classmethod
    def err(cls, message: str) -> ToolOutcome:
        return cls(success=False, error=message)

    def payload(self) -> Any:
        """The handler's value, or ``{"error": message}`` on failure."""
        if self.success:
            return self.value
        return {"error": self.error}

    def to_content(self) -> str:
        """Serialize the payload into the text of a tool message."""
        payload = self.payload()
        if isinstance(payload, str):
            return payload
        return json.dumps(payload, ensure_ascii=False, default=str)
