"""Aggregator - merge successful agent outputs into one answer."""

from __future__ import annotations

from collections.abc import Sequence

from heavy.llm.gateway import LLMGateway
from heavy.models import AgentResult, Message
from heavy.utils.config import DEFAULT_SYNTHESIS_PROMPT
from heavy.utils.exceptions import AggregationError
from heavy.utils.logging import get_logger

logger = get_logger(__name__)

ALL_AGENTS_FAILED_MESSAGE = "All agents failed to provide results. Please try again."
SYNTHESIS_FAILED_PREFIX = "Synthesis failed. Raw responses:\n\n"


def format_agent_responses(results: Sequence[AgentResult]) -> str:
    """Label each result with its 1-based agent number, in index order."""
    ordered = sorted(results, key=lambda r: r.agent_index)
    return "".join(
        f"=== AGENT {r.agent_index + 1} RESPONSE ===\n{r.text}\n\n" for r in ordered
    )


class Aggregator:
    """Zero successes: fixed message. One: verbatim. Several: one synthesis call."""

    def __init__(
        self,
        gateway: LLMGateway,
        prompt_template: str = DEFAULT_SYNTHESIS_PROMPT,
    ) -> None:
        self._gateway = gateway
        self._prompt_template = prompt_template

    def build_prompt(self, successes: Sequence[AgentResult]) -> str:
        return self._prompt_template.replace(
            "{num_responses}", str(len(successes))
        ).replace("{agent_responses}", format_agent_responses(successes))

    async def aggregate(self, results: Sequence[AgentResult]) -> str:
        """Return the final answer for a run. Never raises."""
        successes = [r for r in results if r.is_success]

        if not successes:
            logger.warning("No successful agent results", total=len(results))
            return ALL_AGENTS_FAILED_MESSAGE

        if len(successes) == 1:
            logger.info("Single successful result, skipping synthesis")
            return successes[0].text

        try:
            return await self._synthesize(successes)
        except AggregationError as e:
            logger.warning("Synthesis failed, returning raw responses", error=e.message)
            return SYNTHESIS_FAILED_PREFIX + format_agent_responses(successes)

    async def _synthesize(self, successes: Sequence[AgentResult]) -> str:
        prompt = self.build_prompt(successes)
        try:
            response = await self._gateway.complete([Message.user(prompt)])
        except Exception as e:
            raise AggregationError(f"Synthesis call failed: {e}", cause=e) from e

        if not response.content.strip():
            raise AggregationError("Synthesis returned an empty response")

        logger.info("Synthesis complete", responses=len(successes))
        return response.content
