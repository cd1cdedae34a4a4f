"""In-memory tracking of orchestration runs started over the API.

Runs live only as long as the process. Each run gets its own Orchestrator,
since an orchestrator instance handles one query at a time.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from heavy.core.orchestrator import Orchestrator
from heavy.llm.factory import create_gateway
from heavy.models import ProgressStatus, TaskRun
from heavy.tools.builtin import create_default_registry
from heavy.utils.config import AppConfig
from heavy.utils.exceptions import NotFoundError
from heavy.utils.logging import get_api_logger

logger = get_api_logger()

OrchestratorFactory = Callable[[int | None], Orchestrator]


class RunState(str, Enum):
    """Lifecycle of an API-tracked run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunRecord:
    """One tracked run."""

    run_id: str
    query: str
    orchestrator: Orchestrator
    state: RunState = RunState.RUNNING
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    result: TaskRun | None = None
    error: str | None = None
    task: asyncio.Task[TaskRun] | None = None

    @property
    def progress(self) -> list[ProgressStatus]:
        return self.orchestrator.progress_snapshot()

    @property
    def answer(self) -> str | None:
        return self.result.answer if self.result else None


class RunManager:
    """Starts runs in the background and keeps their records."""

    def __init__(self, orchestrator_factory: OrchestratorFactory) -> None:
        self._factory = orchestrator_factory
        self._runs: dict[str, RunRecord] = {}

    def __len__(self) -> int:
        return len(self._runs)

    @property
    def active_count(self) -> int:
        return sum(1 for r in self._runs.values() if r.state == RunState.RUNNING)

    def list_runs(self) -> list[RunRecord]:
        return sorted(self._runs.values(), key=lambda r: r.created_at, reverse=True)

    def get(self, run_id: str) -> RunRecord:
        record = self._runs.get(run_id)
        if record is None:
            raise NotFoundError("Run", run_id)
        return record

    def start(self, query: str, num_agents: int | None = None) -> RunRecord:
        """Create a run and schedule it on the running event loop."""
        record = RunRecord(
            run_id=str(uuid.uuid4()),
            query=query,
            orchestrator=self._factory(num_agents),
        )
        self._runs[record.run_id] = record

        record.task = asyncio.create_task(record.orchestrator.run(query))
        record.task.add_done_callback(lambda task: self._finish(record, task))

        logger.info("Run scheduled", run_id=record.run_id, num_agents=record.orchestrator.num_agents)
        return record

    async def run_to_completion(self, query: str, num_agents: int | None = None) -> RunRecord:
        """Start a run and wait for it."""
        record = self.start(query, num_agents)
        assert record.task is not None
        await asyncio.wait([record.task])
        return record

    async def shutdown(self) -> None:
        """Cancel every run still in flight."""
        pending = [r.task for r in self._runs.values() if r.task and not r.task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Run manager shut down", cancelled=len(pending))

    def _finish(self, record: RunRecord, task: asyncio.Task[TaskRun]) -> None:
        record.completed_at = datetime.now(UTC)

        if task.cancelled():
            record.state = RunState.FAILED
            record.error = "Run was cancelled"
        elif task.exception() is not None:
            record.state = RunState.FAILED
            record.error = str(task.exception())
        else:
            record.result = task.result()
            record.state = RunState.COMPLETED

        logger.info("Run finished", run_id=record.run_id, state=record.state.value)


def orchestrator_factory_from_config(config: AppConfig) -> OrchestratorFactory:
    """Build a factory that wires orchestrators from ``config``.

    The gateway and tool registry are created on first use and shared by
    every orchestrator the factory returns.
    """
    shared: dict[str, object] = {}

    def factory(num_agents: int | None = None) -> Orchestrator:
        if "gateway" not in shared:
            shared["gateway"] = create_gateway(config)
            shared["tools"] = create_default_registry(config)
        return Orchestrator.from_config(
            config,
            shared["gateway"],  # type: ignore[arg-type]
            shared["tools"],  # type: ignore[arg-type]
            num_agents=num_agents,
        )

    return factory
