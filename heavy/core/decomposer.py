"""Task Decomposer - split one query into N subtask prompts.

One gateway call asks the model for a JSON array of exactly N strings. Any
failure (gateway error, unparsable output, wrong count, blank entries) falls
back to a fixed set of phrasings, so decomposition always succeeds.
"""

from __future__ import annotations

import json
import re

from heavy.llm.gateway import LLMGateway
from heavy.models import Message
from heavy.utils.config import DEFAULT_QUESTION_GENERATION_PROMPT
from heavy.utils.exceptions import DecompositionError
from heavy.utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_TEMPLATES: tuple[str, ...] = (
    "Research comprehensive information about: {query}",
    "Analyze and provide insights about: {query}",
    "Find alternative perspectives on: {query}",
    "Verify and cross-check facts about: {query}",
    "Explore practical applications of: {query}",
    "Investigate future implications of: {query}",
)

PADDING_TEMPLATE = "Additional research angle {number} on: {query}"

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


def fallback_subtasks(query: str, n: int) -> list[str]:
    """Deterministic subtasks for ``query``; no I/O.

    The fixed phrasings are truncated to ``n``; beyond six, numbered padding
    entries are appended. Every entry contains ``query``.
    """
    if n < 1:
        raise ValueError("n must be at least 1")

    subtasks = [t.format(query=query) for t in FALLBACK_TEMPLATES[:n]]
    for number in range(len(subtasks) + 1, n + 1):
        subtasks.append(PADDING_TEMPLATE.format(number=number, query=query))
    return subtasks


def parse_subtasks(text: str, n: int) -> list[str]:
    """Extract exactly ``n`` non-blank strings from a model response.

    Raises:
        DecompositionError: If no valid array of the right size is found.
    """
    match = _JSON_ARRAY.search(text or "")
    if match is None:
        raise DecompositionError("No JSON array in decomposition response", text)

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise DecompositionError(f"Invalid JSON array: {e.msg}", text) from e

    if not isinstance(data, list):
        raise DecompositionError("Decomposition response is not an array", text)
    if len(data) != n:
        raise DecompositionError(
            f"Expected {n} subtasks, got {len(data)}", text
        )
    if not all(isinstance(item, str) and item.strip() for item in data):
        raise DecompositionError("Subtasks must be non-empty strings", text)

    return [item.strip() for item in data]


class TaskDecomposer:
    """Turns a user query into exactly N subtask prompts."""

    def __init__(
        self,
        gateway: LLMGateway,
        prompt_template: str = DEFAULT_QUESTION_GENERATION_PROMPT,
    ) -> None:
        self._gateway = gateway
        self._prompt_template = prompt_template

    def build_prompt(self, query: str, n: int) -> str:
        return self._prompt_template.replace("{user_input}", query).replace(
            "{num_agents}", str(n)
        )

    async def decompose(self, query: str, n: int) -> list[str]:
        """Return exactly ``n`` subtask prompts for ``query``.

        Never raises for model or network problems; those select the fallback.
        """
        if n < 1:
            raise ValueError("n must be at least 1")

        prompt = self.build_prompt(query, n)
        try:
            response = await self._gateway.complete([Message.user(prompt)])
            subtasks = parse_subtasks(response.content, n)
        except Exception as e:
            logger.warning(
                "Decomposition failed, using fallback subtasks",
                num_agents=n,
                error=str(e),
                error_type=type(e).__name__,
            )
            return fallback_subtasks(query, n)

        logger.info("Query decomposed", num_agents=n)
        return subtasks
