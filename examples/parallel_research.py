#!/usr/bin/env python
"""Parallel Research Example - 병렬 리서치 예제.

이 예제는 라이브러리로서 Orchestrator를 직접 구성하는 방법을 보여줍니다.
기본 도구에 커스텀 도구를 추가하고, 진행 상태를 콘솔에 출력하며,
최종 답변과 Agent별 결과를 확인합니다.

사용법:
    export OPENROUTER_API_KEY=...
    python examples/parallel_research.py "Compare solar and wind power for a small farm"
"""

import asyncio
import sys
from datetime import UTC, datetime
from typing import Any

from heavy.core.orchestrator import Orchestrator
from heavy.llm.factory import create_gateway
from heavy.models import ProgressStatus
from heavy.tools.builtin import create_default_registry
from heavy.utils.config import init_config
from heavy.utils.exceptions import ConfigurationError
from heavy.utils.logging import setup_logging

# =============================================================================
# 커스텀 도구
# =============================================================================

CURRENT_DATE_SCHEMA = {
    "type": "object",
    "properties": {
        "timezone": {
            "type": "string",
            "description": "Only 'UTC' is supported",
        }
    },
    "required": [],
}


def current_date(timezone: str = "UTC") -> dict[str, Any]:
    """Agent가 '최근' 정보를 판단할 수 있도록 오늘 날짜를 반환합니다."""
    now = datetime.now(UTC)
    return {"date": now.date().isoformat(), "timezone": timezone}


# =============================================================================
# 진행 상태 출력
# =============================================================================


class PrintingSink:
    """상태 전이마다 한 줄씩 출력하는 ProgressSink."""

    def on_update(self, agent_index: int, status: ProgressStatus) -> None:
        if status != ProgressStatus.QUEUED:
            print(f"  agent {agent_index + 1}: {status.value}")


async def main(query: str) -> int:
    config = init_config()
    setup_logging(level="WARNING", json_format=False, stream=sys.stderr)

    try:
        gateway = create_gateway(config)
    except ConfigurationError as e:
        print(f"ERROR: {e.message}")
        return 1

    tools = create_default_registry(config)
    tools.register(
        "current_date",
        CURRENT_DATE_SCHEMA,
        current_date,
        description="Return today's date",
    )

    orchestrator = Orchestrator.from_config(
        config, gateway, tools, progress_sink=PrintingSink(), num_agents=3
    )

    print(f"Query: {query}")
    run = await orchestrator.run(query)

    print("\nSubtasks:")
    for index, subtask in enumerate(run.subtask_prompts, start=1):
        print(f"  {index}. {subtask}")

    print("\nAgent results:")
    for result in run.results:
        state = "ok" if result.is_success else f"failed ({result.error_message})"
        print(f"  agent {result.agent_index + 1}: {state}, {result.iterations} iterations")

    print(f"\nFinished in {run.duration_seconds:.1f}s\n")
    print(run.answer)
    return 0


if __name__ == "__main__":
    question = " ".join(sys.argv[1:]) or "What are the trade-offs of running LLM agents in parallel?"
    sys.exit(asyncio.run(main(question)))
