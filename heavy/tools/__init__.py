"""Tools available to agents."""

from heavy.tools.base import Tool, ToolHandler, ToolOutcome
from heavy.tools.builtin import (
    COMPLETION_TOOL_NAME,
    WebTools,
    calculate,
    create_default_registry,
    mark_task_complete,
    register_builtin_tools,
)
from heavy.tools.registry import ToolRegistry

__all__ = [
    "Tool",
    "ToolHandler",
    "ToolOutcome",
    "ToolRegistry",
    "WebTools",
    "COMPLETION_TOOL_NAME",
    "calculate",
    "mark_task_complete",
    "register_builtin_tools",
    "create_default_registry",
]
