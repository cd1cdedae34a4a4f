"""테스트 공통 설정 및 fixtures."""

from collections.abc import Iterator

import pytest

from heavy.tools.base import Tool
from heavy.tools.builtin import (
    COMPLETION_TOOL_NAME,
    MARK_TASK_COMPLETE_SCHEMA,
    mark_task_complete,
)
from heavy.tools.registry import ToolRegistry
from heavy.utils.config import AppConfig, reset_config

# 호스트 환경의 설정이 테스트에 섞이지 않도록 제거할 환경 변수
_CONFIG_ENV_VARS = (
    "APP_ENV",
    "APP_DEBUG",
    "APP_HOST",
    "APP_PORT",
    "LLM_PROVIDER",
    "LLM_API_KEY",
    "LLM_BASE_URL",
    "LLM_MODEL",
    "LLM_TEMPERATURE",
    "OPENROUTER_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "JINA_API_KEY",
    "MAX_ITERATIONS",
    "PARALLEL_AGENTS",
    "TASK_TIMEOUT",
    "OUTPUT_DIR",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """설정 관련 환경 변수와 전역 설정 초기화."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def app_config() -> AppConfig:
    """API 키가 설정된 기본 AppConfig fixture."""
    config = AppConfig()
    return config.model_copy(
        update={"llm": config.llm.model_copy(update={"api_key": "test-key"})}
    )


@pytest.fixture
def echo_tool() -> Tool:
    """인자를 그대로 돌려주는 Tool fixture."""
    return Tool(
        name="echo",
        handler=lambda text: {"echo": text},
        parameters={
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
        description="Echo the input",
    )


@pytest.fixture
def tool_registry(echo_tool: Tool) -> ToolRegistry:
    """echo와 mark_task_complete가 등록된 Registry fixture."""
    registry = ToolRegistry()
    registry.register_tool(echo_tool)
    registry.register(COMPLETION_TOOL_NAME, MARK_TASK_COMPLETE_SCHEMA, mark_task_complete)
    return registry
