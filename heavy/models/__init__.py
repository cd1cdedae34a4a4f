"""Data models package.

This module defines all data models used by Make It Heavy.
"""

from .agent import (
    AgentContext,
    AgentResult,
    ProgressStatus,
    ResultStatus,
)
from .message import (
    Message,
    Role,
    ToolCall,
)
from .task import TaskRun

__all__ = [
    # Agent models
    "AgentContext",
    "AgentResult",
    "ProgressStatus",
    "ResultStatus",
    # Message models
    "Message",
    "Role",
    "ToolCall",
    # Run models
    "TaskRun",
]
