"""Make It Heavy - multi-agent research orchestrator.

One query is split into N subtasks, N tool-using agents research them in
parallel, and their findings are synthesized into a single answer.
"""

__version__ = "1.0.0"
