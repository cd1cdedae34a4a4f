"""Tool Registry - name to handler mapping with safe dispatch.

This module provides the registry agents use to execute model-requested tool
calls. Every failure mode of a call becomes an error outcome so the agent loop
can feed it back to the model and keep going.
"""

from __future__ import annotations

import inspect
import json
from typing import Any

from heavy.tools.base import Tool, ToolHandler, ToolOutcome
from heavy.utils.exceptions import (
    ToolAlreadyRegisteredError,
    ToolError,
    ToolExecutionError,
)
from heavy.utils.logging import get_logger

logger = get_logger(__name__)

# JSON schema type name -> accepted Python types
_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list, tuple),
    "object": (dict,),
    "null": (type(None),),
}


class ToolRegistry:
    """Registry of tools available to agents.

    Example:
        registry = ToolRegistry()
        registry.register("add", schema, lambda a, b: a + b)
        outcome = await registry.dispatch("add", '{"a": 1, "b": 2}')
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def register(
        self,
        name: str,
        schema: dict[str, Any],
        handler: ToolHandler,
        description: str = "",
    ) -> Tool:
        """Register a handler under ``name``.

        Args:
            name: Tool name the model will call.
            schema: JSON schema (object) describing the arguments.
            handler: Sync or async callable invoked with keyword arguments.
            description: Human-readable description sent to the model.

        Returns:
            The registered Tool.

        Raises:
            ToolAlreadyRegisteredError: If the name is already taken.
        """
        return self.register_tool(
            Tool(name=name, handler=handler, parameters=schema, description=description)
        )

    def register_tool(self, tool: Tool) -> Tool:
        """Register a prebuilt Tool."""
        if tool.name in self._tools:
            raise ToolAlreadyRegisteredError(tool.name)

        self._tools[tool.name] = tool
        logger.debug("Tool registered", tool_name=tool.name)
        return tool

    def unregister(self, name: str) -> None:
        """Remove a tool if present."""
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        """Registered tool names in registration order."""
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        """OpenAI function-calling schemas for every registered tool."""
        return [tool.to_openai_format() for tool in self._tools.values()]

    async def dispatch(self, name: str, raw_arguments: Any) -> ToolOutcome:
        """Execute a tool call. Never raises.

        Args:
            name: Tool name requested by the model.
            raw_arguments: JSON string, mapping, or None.

        Returns:
            ToolOutcome with the handler's value, or an error message for an
            unknown tool, bad arguments, or a handler exception.
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Unknown tool requested", tool_name=name)
            return ToolOutcome.err(f"Unknown tool: {name}")

        try:
            arguments = _parse_arguments(raw_arguments)
            _validate_arguments(tool.parameters, arguments)
            value = await self._invoke(tool, arguments)
        except ToolError as e:
            logger.warning("Tool call failed", tool_name=name, error=e.message)
            return ToolOutcome.err(e.message)

        logger.debug("Tool call succeeded", tool_name=name)
        return ToolOutcome.ok(value)

    async def _invoke(self, tool: Tool, arguments: dict[str, Any]) -> Any:
        try:
            result = tool.handler(**arguments)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            raise ToolExecutionError(
                tool.name, f"Tool execution failed: {e}", cause=e
            ) from e


def _parse_arguments(raw_arguments: Any) -> dict[str, Any]:
    if raw_arguments is None or raw_arguments == "":
        return {}
    if isinstance(raw_arguments, dict):
        return dict(raw_arguments)
    if not isinstance(raw_arguments, str):
        raise ToolError(
            f"Invalid tool arguments: expected a JSON object, got {type(raw_arguments).__name__}"
        )

    try:
        parsed = json.loads(raw_arguments)
    except json.JSONDecodeError as e:
        raise ToolError(f"Invalid tool arguments: {e.msg}") from e

    if not isinstance(parsed, dict):
        raise ToolError("Invalid tool arguments: expected a JSON object")
    return parsed


def _validate_arguments(schema: dict[str, Any], arguments: dict[str, Any]) -> None:
    """Check required keys, primitive types and enums against ``schema``."""
    for key in schema.get("required", []):
        if key not in arguments:
            raise ToolError(f"Missing required argument: {key}")

    properties = schema.get("properties", {})
    for key, value in arguments.items():
        prop = properties.get(key)
        if prop is None:
            continue

        expected = prop.get("type")
        if isinstance(expected, str) and expected in _JSON_TYPES:
            # bool is a subclass of int
            is_bool = isinstance(value, bool)
            if not isinstance(value, _JSON_TYPES[expected]) or (
                is_bool and expected in ("integer", "number")
            ):
                raise ToolError(
                    f"Invalid type for argument '{key}': expected {expected}"
                )

        if "enum" in prop and value not in prop["enum"]:
            raise ToolError(
                f"Invalid value for argument '{key}': must be one of {prop['enum']}"
            )
