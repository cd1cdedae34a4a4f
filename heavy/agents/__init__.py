"""Agent execution."""

from heavy.agents.loop import AgentLoop

__all__ = ["AgentLoop"]
