"""Orchestrator - fan one query out to N agents and merge the results.

Flow:
                 ┌─→ [Agent 1] ─┐
    [Decompose] ─┼─→ [Agent 2] ─┼─→ [Aggregate] → answer
                 └─→ [Agent N] ─┘

All N agents run concurrently on one event loop and are joined with
``asyncio.gather(..., return_exceptions=True)``, so one agent's failure never
cancels or blocks the others.
"""

from __future__ import annotations

import asyncio

from heavy.agents.loop import AgentLoop
from heavy.core.aggregator import Aggregator
from heavy.core.decomposer import TaskDecomposer
from heavy.core.progress import ProgressSink, ProgressTable
from heavy.llm.gateway import LLMGateway
from heavy.models import AgentResult, ProgressStatus, TaskRun
from heavy.tools.registry import ToolRegistry
from heavy.utils.config import AppConfig
from heavy.utils.exceptions import ConflictError
from heavy.utils.logging import get_run_logger


class Orchestrator:
    """Concurrency coordinator for one multi-agent run at a time.

    Example:
        orchestrator = Orchestrator.from_config(config, gateway, registry)
        answer = await orchestrator.orchestrate("compare X and Y")
    """

    def __init__(
        self,
        agent_loop: AgentLoop,
        decomposer: TaskDecomposer,
        aggregator: Aggregator,
        num_agents: int = 4,
        progress_sink: ProgressSink | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            agent_loop: Loop shared by all agents of a run.
            decomposer: Produces one subtask per agent.
            aggregator: Merges agent results into the answer.
            num_agents: Number of agents per run.
            progress_sink: Optional observer of slot transitions.
        """
        if num_agents < 1:
            raise ValueError("num_agents must be at least 1")

        self._agent_loop = agent_loop
        self._decomposer = decomposer
        self._aggregator = aggregator
        self._num_agents = num_agents
        self._progress = ProgressTable(num_agents, sink=progress_sink)
        self._run_lock = asyncio.Lock()
        self._current_run: TaskRun | None = None

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        gateway: LLMGateway,
        tools: ToolRegistry,
        progress_sink: ProgressSink | None = None,
        num_agents: int | None = None,
    ) -> Orchestrator:
        """Wire an orchestrator from application config."""
        return cls(
            agent_loop=AgentLoop.from_config(config, gateway, tools),
            decomposer=TaskDecomposer(
                gateway, config.orchestrator.question_generation_prompt
            ),
            aggregator=Aggregator(gateway, config.orchestrator.synthesis_prompt),
            num_agents=num_agents or config.orchestrator.parallel_agents,
            progress_sink=progress_sink,
        )

    @property
    def num_agents(self) -> int:
        return self._num_agents

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    @property
    def current_run(self) -> TaskRun | None:
        """The run in flight, or the most recent one."""
        return self._current_run

    def progress_snapshot(self) -> list[ProgressStatus]:
        """Status of every agent slot. Safe to call at any time."""
        return self._progress.snapshot()

    def set_progress_sink(self, sink: ProgressSink | None) -> None:
        self._progress.set_sink(sink)

    async def orchestrate(self, query: str) -> str:
        """Run the full pipeline and return the final answer text.

        Raises:
            ConflictError: If this instance is already running a query.
        """
        run = await self.run(query)
        return run.answer or ""

    async def run(self, query: str) -> TaskRun:
        """Run the full pipeline and return the complete run record.

        Raises:
            ConflictError: If this instance is already running a query.
        """
        if self._run_lock.locked():
            raise ConflictError(
                "Orchestrator is already running a query",
                details={"session_id": self._current_run.session_id if self._current_run else None},
            )

        async with self._run_lock:
            run = TaskRun(original_query=query)
            self._current_run = run
            log = get_run_logger(run.session_id)

            self._progress.reset(self._num_agents)
            log.info("Run started", num_agents=self._num_agents)

            run.subtask_prompts = await self._decomposer.decompose(query, self._num_agents)
            run.results = await self._run_agents(run.subtask_prompts, run.session_id)
            run.progress = self._progress.snapshot()

            succeeded = len(run.successful_results)
            log.info(
                "Agents finished",
                succeeded=succeeded,
                failed=self._num_agents - succeeded,
            )

            answer = await self._aggregator.aggregate(run.results)
            run.mark_completed(answer)
            log.info("Run completed", duration_seconds=run.duration_seconds)
            return run

    async def _run_agents(
        self, subtasks: list[str], session_id: str
    ) -> list[AgentResult]:
        tasks = [
            asyncio.create_task(
                self._agent_loop.run(index, subtask, self._progress, session_id)
            )
            for index, subtask in enumerate(subtasks)
        ]

        # Cancelling the gather cancels every agent task
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: list[AgentResult] = []
        for index, outcome in enumerate(outcomes):
            if isinstance(outcome, AgentResult):
                results.append(outcome)
                continue

            # AgentLoop.run only lets cancellation escape
            self._progress.update(index, ProgressStatus.FAILED)
            results.append(
                AgentResult.failure(index, f"Agent {index + 1} crashed: {outcome!r}")
            )

        results.sort(key=lambda r: r.agent_index)
        return results
