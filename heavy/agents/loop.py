"""Agent Loop - run one subtask to completion or to its iteration limit.

Each iteration sends the whole conversation to the gateway, records the
assistant turn, and answers every tool call it contains. The loop ends when
the model calls the completion tool, when a turn carries no tool calls, or
when the iteration budget runs out. ``run`` always returns an AgentResult;
only cancellation propagates.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import TYPE_CHECKING

from heavy.llm.gateway import LLMGateway
from heavy.models import (
    AgentContext,
    AgentResult,
    Message,
    ProgressStatus,
    ToolCall,
)
from heavy.tools.builtin import COMPLETION_TOOL_NAME
from heavy.tools.registry import ToolRegistry
from heavy.utils.config import DEFAULT_SYSTEM_PROMPT, AppConfig
from heavy.utils.exceptions import AgentExhaustionError, AgentTimeoutError
from heavy.utils.logging import LoggerAdapter, get_agent_logger

if TYPE_CHECKING:
    from heavy.core.progress import ProgressTable


class AgentLoop:
    """Bounded tool-calling loop for a single agent.

    One instance may serve many concurrent runs: all per-run state lives in
    an AgentContext created inside ``run``.

    Attributes:
        gateway: Gateway used for every model turn.
        tools: Registry used to answer tool calls.
        max_iterations: Maximum gateway calls per run.
        completion_tool: Tool name that ends the loop successfully.
        timeout_seconds: Optional wall-clock deadline per run.
    """

    def __init__(
        self,
        gateway: LLMGateway,
        tools: ToolRegistry,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_iterations: int = 15,
        completion_tool: str = COMPLETION_TOOL_NAME,
        timeout_seconds: float | None = None,
    ) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        self.gateway = gateway
        self.tools = tools
        self.system_prompt = system_prompt
        self.max_iterations = max_iterations
        self.completion_tool = completion_tool
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        gateway: LLMGateway,
        tools: ToolRegistry,
    ) -> AgentLoop:
        return cls(
            gateway,
            tools,
            system_prompt=config.agent.system_prompt,
            max_iterations=config.agent.max_iterations,
            completion_tool=config.agent.completion_tool,
            timeout_seconds=config.orchestrator.task_timeout,
        )

    async def run(
        self,
        agent_index: int,
        subtask_prompt: str,
        progress: ProgressTable | None = None,
        session_id: str | None = None,
    ) -> AgentResult:
        """Execute one subtask.

        Args:
            agent_index: Zero-based slot index of this agent.
            subtask_prompt: First user message for the conversation.
            progress: Optional table whose slot ``agent_index`` is updated.
            session_id: Optional run id for log context.

        Returns:
            A success result with the joined assistant text, or an error
            result with the failure reason and any partial text.
        """
        log = get_agent_logger(agent_index, session_id)
        context = AgentContext(agent_index=agent_index, subtask_prompt=subtask_prompt)

        def transition(status: ProgressStatus) -> None:
            context.status = status
            if progress is not None:
                progress.update(agent_index, status)

        try:
            if self.timeout_seconds:
                return await asyncio.wait_for(
                    self._execute(context, transition, log),
                    timeout=self.timeout_seconds,
                )
            return await self._execute(context, transition, log)
        except TimeoutError:
            transition(ProgressStatus.FAILED)
            error = AgentTimeoutError(agent_index, self.timeout_seconds or 0)
            log.warning("Agent timed out", timeout_seconds=self.timeout_seconds)
            return self._failure(context, error.message)
        except asyncio.CancelledError:
            transition(ProgressStatus.FAILED)
            log.info("Agent cancelled", iterations=context.iteration_count)
            raise
        except Exception as e:
            transition(ProgressStatus.FAILED)
            log.error(
                "Agent failed",
                error=str(e),
                error_type=type(e).__name__,
                iterations=context.iteration_count,
            )
            return self._failure(context, str(e))

    async def _execute(
        self,
        context: AgentContext,
        transition: Callable[[ProgressStatus], None],
        log: LoggerAdapter,
    ) -> AgentResult:
        transition(ProgressStatus.INITIALIZING)
        context.append(Message.system(self.system_prompt))
        context.append(Message.user(context.subtask_prompt))
        schemas = self.tools.schemas()

        transition(ProgressStatus.PROCESSING)
        log.info("Agent started", max_iterations=self.max_iterations)

        while context.iteration_count < self.max_iterations:
            context.iteration_count += 1
            message = await self.gateway.complete(list(context.conversation), schemas)
            context.append(message)

            if message.content.strip():
                context.accumulated_text.append(message.content)

            if not message.tool_calls:
                log.info("Agent finished without tool calls", iterations=context.iteration_count)
                transition(ProgressStatus.COMPLETED)
                return self._success(context)

            if await self._answer_tool_calls(context, message.tool_calls, log):
                log.info("Agent marked task complete", iterations=context.iteration_count)
                transition(ProgressStatus.COMPLETED)
                return self._success(context)

        error = AgentExhaustionError(context.agent_index, self.max_iterations)
        log.warning("Agent exhausted iterations", max_iterations=self.max_iterations)
        transition(ProgressStatus.FAILED)
        return self._failure(context, error.message)

    async def _answer_tool_calls(
        self,
        context: AgentContext,
        tool_calls: list[ToolCall],
        log: LoggerAdapter,
    ) -> bool:
        """Append one tool message per call; return True if the task is complete.

        Calls that follow the completion call in the same batch are answered
        with a skip notice instead of being executed.
        """
        completed = False
        for call in tool_calls:
            if completed:
                content = json.dumps(
                    {"error": f"skipped: {self.completion_tool} was already called"}
                )
                context.append(Message.tool_response(call.id, call.name, content))
                continue

            outcome = await self.tools.dispatch(call.name, call.arguments)
            log.debug(
                "Tool call answered",
                tool_name=call.name,
                success=outcome.success,
                iteration=context.iteration_count,
            )
            context.append(
                Message.tool_response(call.id, call.name, outcome.to_content())
            )

            if call.name == self.completion_tool:
                completed = True

        return completed

    @staticmethod
    def _success(context: AgentContext) -> AgentResult:
        return AgentResult.success(
            context.agent_index, context.joined_text(), context.iteration_count
        )

    @staticmethod
    def _failure(context: AgentContext, message: str) -> AgentResult:
        return AgentResult.failure(
            context.agent_index,
            message,
            text=context.joined_text(),
            iterations=context.iteration_count,
        )
