"""Core orchestration components.

This module provides the central components for a multi-agent run:
- TaskDecomposer: Splits a query into one subtask per agent
- ProgressTable: Forward-only per-agent status tracking
- Aggregator: Merges successful agent outputs
- Orchestrator: Runs the agents concurrently and ties it all together
"""

from heavy.core.aggregator import (
    ALL_AGENTS_FAILED_MESSAGE,
    SYNTHESIS_FAILED_PREFIX,
    Aggregator,
    format_agent_responses,
)
from heavy.core.decomposer import (
    FALLBACK_TEMPLATES,
    TaskDecomposer,
    fallback_subtasks,
    parse_subtasks,
)
from heavy.core.orchestrator import Orchestrator
from heavy.core.progress import ProgressSink, ProgressTable

__all__ = [
    # Aggregation
    "Aggregator",
    "ALL_AGENTS_FAILED_MESSAGE",
    "SYNTHESIS_FAILED_PREFIX",
    "format_agent_responses",
    # Decomposition
    "TaskDecomposer",
    "FALLBACK_TEMPLATES",
    "fallback_subtasks",
    "parse_subtasks",
    # Orchestration
    "Orchestrator",
    # Progress
    "ProgressSink",
    "ProgressTable",
]
