"""Aggregator 테스트."""

import pytest

from heavy.core.aggregator import (
    ALL_AGENTS_FAILED_MESSAGE,
    SYNTHESIS_FAILED_PREFIX,
    Aggregator,
    format_agent_responses,
)
from heavy.models import AgentResult
from tests.stubs import ScriptedProvider, make_gateway


def ok(index: int, text: str) -> AgentResult:
    return AgentResult.success(index, text, iterations=1)


def failed(index: int) -> AgentResult:
    return AgentResult.failure(index, "boom", text="partial")


class TestFormatAgentResponses:
    """format_agent_responses 테스트."""

    def test_labels_are_one_based_and_ordered(self):
        text = format_agent_responses([ok(2, "third"), ok(0, "first")])

        assert text == (
            "=== AGENT 1 RESPONSE ===\nfirst\n\n"
            "=== AGENT 3 RESPONSE ===\nthird\n\n"
        )


class TestAggregator:
    """Aggregator 테스트."""

    @pytest.mark.asyncio
    async def test_no_successes(self):
        provider = ScriptedProvider()
        answer = await Aggregator(make_gateway(provider)).aggregate([failed(0), failed(1)])

        assert answer == ALL_AGENTS_FAILED_MESSAGE
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_single_success_is_verbatim(self):
        provider = ScriptedProvider()
        answer = await Aggregator(make_gateway(provider)).aggregate(
            [failed(0), ok(1, "only answer"), failed(2)]
        )

        assert answer == "only answer"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_synthesis_of_several(self):
        provider = ScriptedProvider(["Unified answer"])
        aggregator = Aggregator(
            make_gateway(provider), "{num_responses} reports:\n{agent_responses}"
        )

        answer = await aggregator.aggregate([ok(0, "alpha"), failed(1), ok(2, "gamma")])

        assert answer == "Unified answer"
        assert len(provider.calls) == 1
        prompt = provider.calls[0]["messages"][0].content
        assert prompt.startswith("2 reports:")
        assert "=== AGENT 1 RESPONSE ===\nalpha" in prompt
        assert "=== AGENT 3 RESPONSE ===\ngamma" in prompt
        assert "partial" not in prompt

    @pytest.mark.asyncio
    async def test_synthesis_failure_returns_raw_responses(self):
        provider = ScriptedProvider(responder=lambda messages, tools: ConnectionError("down"))
        aggregator = Aggregator(make_gateway(provider, max_retries=0))

        answer = await aggregator.aggregate([ok(0, "alpha"), ok(1, "beta")])

        assert answer.startswith(SYNTHESIS_FAILED_PREFIX)
        assert "=== AGENT 1 RESPONSE ===\nalpha" in answer
        assert "=== AGENT 2 RESPONSE ===\nbeta" in answer

    @pytest.mark.asyncio
    async def test_empty_synthesis_returns_raw_responses(self):
        provider = ScriptedProvider(["   "])
        answer = await Aggregator(make_gateway(provider)).aggregate(
            [ok(0, "alpha"), ok(1, "beta")]
        )

        assert answer.startswith(SYNTHESIS_FAILED_PREFIX)
