"""Orchestrator unit tests."""

import asyncio
import json

import pytest

from heavy.agents.loop import AgentLoop
from heavy.core import (
    ALL_AGENTS_FAILED_MESSAGE,
    Aggregator,
    Orchestrator,
    TaskDecomposer,
    fallback_subtasks,
)
from heavy.models import Message, ProgressStatus, ResultStatus
from heavy.tools.registry import ToolRegistry
from heavy.utils.config import AppConfig
from heavy.utils.exceptions import ConflictError
from tests.stubs import ScriptedProvider, completion_call, make_gateway, tool_call

DECOMPOSE = "DECOMPOSE {user_input} {num_agents}"
SYNTHESIZE = "SYNTHESIZE {num_responses}\n{agent_responses}"


class ResearchModel:
    """Scripted model playing decomposer, agents and synthesizer.

    Agents are told apart by their subtask text ``sub-<i>``.
    """

    def __init__(self, num_agents: int = 4, failing: set[int] | None = None) -> None:
        self.num_agents = num_agents
        self.failing = failing or set()
        self.synthesis_prompts: list[str] = []

    def __call__(self, messages: list[Message], tools):
        first = messages[0].content
        if first.startswith("DECOMPOSE"):
            return json.dumps([f"sub-{i}" for i in range(self.num_agents)])
        if first.startswith("SYNTHESIZE"):
            self.synthesis_prompts.append(first)
            return "FINAL ANSWER"

        index = int(messages[1].content.split("-")[1])
        if index in self.failing:
            return ConnectionError(f"agent {index} backend down")
        return Message.assistant(f"finding {index}", [completion_call()])


def build_orchestrator(
    provider: ScriptedProvider,
    registry: ToolRegistry,
    num_agents: int = 4,
    **kwargs,
) -> Orchestrator:
    gateway = make_gateway(provider, max_retries=0)
    return Orchestrator(
        agent_loop=AgentLoop(gateway, registry, system_prompt="AGENT"),
        decomposer=TaskDecomposer(gateway, DECOMPOSE),
        aggregator=Aggregator(gateway, SYNTHESIZE),
        num_agents=num_agents,
        **kwargs,
    )


class TestOrchestratorRun:
    """전체 파이프라인 테스트."""

    @pytest.mark.asyncio
    async def test_four_agents_one_synthesis(self, tool_registry: ToolRegistry):
        model = ResearchModel(4)
        provider = ScriptedProvider(responder=model)
        orchestrator = build_orchestrator(provider, tool_registry)

        answer = await orchestrator.orchestrate("compare X and Y")

        assert answer == "FINAL ANSWER"
        assert len(model.synthesis_prompts) == 1
        # 1 decomposition + 4 agent turns + 1 synthesis
        assert len(provider.calls) == 6
        assert orchestrator.progress_snapshot() == [ProgressStatus.COMPLETED] * 4

    @pytest.mark.asyncio
    async def test_run_record(self, tool_registry: ToolRegistry):
        provider = ScriptedProvider(responder=ResearchModel(3))
        orchestrator = build_orchestrator(provider, tool_registry, num_agents=3)

        run = await orchestrator.run("compare X and Y")

        assert run.original_query == "compare X and Y"
        assert run.subtask_prompts == ["sub-0", "sub-1", "sub-2"]
        assert [r.agent_index for r in run.results] == [0, 1, 2]
        assert [r.text for r in run.results] == ["finding 0", "finding 1", "finding 2"]
        assert run.progress == [ProgressStatus.COMPLETED] * 3
        assert run.answer == "FINAL ANSWER"
        assert run.completed_at is not None
        assert orchestrator.current_run is run

    @pytest.mark.asyncio
    async def test_one_failed_agent_is_excluded(self, tool_registry: ToolRegistry):
        model = ResearchModel(4, failing={2})
        orchestrator = build_orchestrator(ScriptedProvider(responder=model), tool_registry)

        run = await orchestrator.run("compare X and Y")

        assert run.answer == "FINAL ANSWER"
        assert len(run.successful_results) == 3
        assert not run.results[2].is_success

        prompt = model.synthesis_prompts[0]
        assert prompt.startswith("SYNTHESIZE 3")
        assert "finding 2" not in prompt
        assert "=== AGENT 4 RESPONSE ===\nfinding 3" in prompt
        assert run.progress[2] == ProgressStatus.FAILED

    @pytest.mark.asyncio
    async def test_exhausted_agent_text_is_excluded(self, tool_registry: ToolRegistry):
        """반복 한도를 넘긴 Agent의 부분 텍스트는 종합에 포함되지 않는다."""
        model = ResearchModel(4)

        def responder(messages, tools):
            if messages[0].content == "AGENT" and messages[1].content == "sub-2":
                return Message.assistant(
                    "partial finding 2", [tool_call("echo", {"text": "still looking"})]
                )
            return model(messages, tools)

        gateway = make_gateway(ScriptedProvider(responder=responder), max_retries=0)
        orchestrator = Orchestrator(
            agent_loop=AgentLoop(gateway, tool_registry, system_prompt="AGENT", max_iterations=3),
            decomposer=TaskDecomposer(gateway, DECOMPOSE),
            aggregator=Aggregator(gateway, SYNTHESIZE),
            num_agents=4,
        )

        run = await orchestrator.run("compare X and Y")

        failed = run.results[2]
        assert failed.status == ResultStatus.ERROR
        assert failed.error_message == "maximum iterations reached"
        assert failed.iterations == 3
        assert "partial finding 2" in failed.text

        prompt = model.synthesis_prompts[0]
        assert prompt.startswith("SYNTHESIZE 3")
        assert "partial finding 2" not in prompt
        assert run.answer == "FINAL ANSWER"

    @pytest.mark.asyncio
    async def test_single_survivor_skips_synthesis(self, tool_registry: ToolRegistry):
        model = ResearchModel(3, failing={0, 2})
        orchestrator = build_orchestrator(
            ScriptedProvider(responder=model), tool_registry, num_agents=3
        )

        answer = await orchestrator.orchestrate("q")

        assert answer == "finding 1"
        assert model.synthesis_prompts == []

    @pytest.mark.asyncio
    async def test_all_agents_failed(self, tool_registry: ToolRegistry):
        model = ResearchModel(2, failing={0, 1})
        orchestrator = build_orchestrator(
            ScriptedProvider(responder=model), tool_registry, num_agents=2
        )

        assert await orchestrator.orchestrate("q") == ALL_AGENTS_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_decomposition_failure_uses_fallback(self, tool_registry: ToolRegistry):
        def responder(messages, tools):
            if messages[0].content.startswith("DECOMPOSE"):
                return "no json today"
            if messages[0].content.startswith("SYNTHESIZE"):
                return "merged"
            return Message.assistant("ok", [completion_call()])

        orchestrator = build_orchestrator(
            ScriptedProvider(responder=responder), tool_registry, num_agents=2
        )

        run = await orchestrator.run("solar power")

        assert run.subtask_prompts == fallback_subtasks("solar power", 2)
        assert run.answer == "merged"


class TestOrchestratorConcurrency:
    """병렬 실행 관련 테스트."""

    @pytest.mark.asyncio
    async def test_results_ordered_by_index_not_completion(self, tool_registry: ToolRegistry):
        model = ResearchModel(4)

        class StaggeredProvider(ScriptedProvider):
            async def complete(self, messages, *args, **kwargs):
                if messages[0].content == "AGENT":
                    index = int(messages[1].content.split("-")[1])
                    # Agent 0 finishes last
                    await asyncio.sleep(0.01 * (4 - index))
                return await super().complete(messages, *args, **kwargs)

        orchestrator = build_orchestrator(StaggeredProvider(responder=model), tool_registry)

        run = await orchestrator.run("q")

        assert [r.agent_index for r in run.results] == [0, 1, 2, 3]
        assert "=== AGENT 1 RESPONSE ===\nfinding 0" in model.synthesis_prompts[0]
        first = model.synthesis_prompts[0].index("AGENT 1 RESPONSE")
        last = model.synthesis_prompts[0].index("AGENT 4 RESPONSE")
        assert first < last

    @pytest.mark.asyncio
    async def test_agents_run_concurrently(self, tool_registry: ToolRegistry):
        model = ResearchModel(4)
        active = 0
        peak = 0

        class TrackingProvider(ScriptedProvider):
            async def complete(self, messages, *args, **kwargs):
                nonlocal active, peak
                if messages[0].content == "AGENT":
                    active += 1
                    peak = max(peak, active)
                    await asyncio.sleep(0.02)
                    active -= 1
                return await super().complete(messages, *args, **kwargs)

        await build_orchestrator(TrackingProvider(responder=model), tool_registry).run("q")

        assert peak == 4

    @pytest.mark.asyncio
    async def test_progress_is_monotonic(self, tool_registry: ToolRegistry):
        history: dict[int, list[ProgressStatus]] = {}

        class Sink:
            def on_update(self, agent_index: int, status: ProgressStatus) -> None:
                history.setdefault(agent_index, []).append(status)

        model = ResearchModel(4, failing={1})
        orchestrator = build_orchestrator(
            ScriptedProvider(responder=model), tool_registry, progress_sink=Sink()
        )

        await orchestrator.run("q")

        for index, statuses in history.items():
            ranks = [s.rank for s in statuses]
            assert ranks == sorted(ranks), f"slot {index} moved backwards: {statuses}"
            assert statuses[0] == ProgressStatus.QUEUED
            assert statuses[-1].is_terminal

    @pytest.mark.asyncio
    async def test_concurrent_run_rejected(self, tool_registry: ToolRegistry):
        release = asyncio.Event()
        model = ResearchModel(1)

        class BlockingProvider(ScriptedProvider):
            async def complete(self, messages, *args, **kwargs):
                await release.wait()
                return await super().complete(messages, *args, **kwargs)

        orchestrator = build_orchestrator(
            BlockingProvider(responder=model), tool_registry, num_agents=1
        )

        first = asyncio.create_task(orchestrator.run("first"))
        await asyncio.sleep(0)
        assert orchestrator.is_running

        with pytest.raises(ConflictError):
            await orchestrator.run("second")
        with pytest.raises(ConflictError):
            await orchestrator.orchestrate("third")

        release.set()
        run = await first
        assert run.original_query == "first"
        assert not orchestrator.is_running

    @pytest.mark.asyncio
    async def test_crashed_agent_becomes_failure(self, tool_registry: ToolRegistry):
        class CrashingLoop(AgentLoop):
            async def run(self, agent_index, subtask_prompt, progress=None, session_id=None):
                if agent_index == 1:
                    raise RuntimeError("segfault-ish")
                return await super().run(agent_index, subtask_prompt, progress, session_id)

        model = ResearchModel(2)
        gateway = make_gateway(ScriptedProvider(responder=model), max_retries=0)
        orchestrator = Orchestrator(
            agent_loop=CrashingLoop(gateway, tool_registry, system_prompt="AGENT"),
            decomposer=TaskDecomposer(gateway, DECOMPOSE),
            aggregator=Aggregator(gateway, SYNTHESIZE),
            num_agents=2,
        )

        run = await orchestrator.run("q")

        assert not run.results[1].is_success
        assert "Agent 2 crashed" in run.results[1].error_message
        assert run.answer == "finding 0"
        assert orchestrator.progress_snapshot()[1] == ProgressStatus.FAILED


class TestOrchestratorConfig:
    """설정 기반 생성 테스트."""

    def test_from_config(self, app_config: AppConfig, tool_registry: ToolRegistry):
        gateway = make_gateway(ScriptedProvider())
        orchestrator = Orchestrator.from_config(app_config, gateway, tool_registry)

        assert orchestrator.num_agents == app_config.orchestrator.parallel_agents
        assert orchestrator.progress_snapshot() == [ProgressStatus.QUEUED] * 4

    def test_num_agents_override(self, app_config: AppConfig, tool_registry: ToolRegistry):
        gateway = make_gateway(ScriptedProvider())
        orchestrator = Orchestrator.from_config(app_config, gateway, tool_registry, num_agents=7)
        assert orchestrator.num_agents == 7

    def test_rejects_zero_agents(self, tool_registry: ToolRegistry):
        with pytest.raises(ValueError):
            build_orchestrator(ScriptedProvider(), tool_registry, num_agents=0)
