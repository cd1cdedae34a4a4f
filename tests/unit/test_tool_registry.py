"""Tool Registry 테스트."""

import json

import pytest

from heavy.tools.base import Tool, ToolOutcome
from heavy.tools.registry import ToolRegistry
from heavy.utils.exceptions import ToolAlreadyRegisteredError


class TestToolOutcome:
    """ToolOutcome 테스트."""

    def test_ok_payload(self):
        outcome = ToolOutcome.ok({"result": 4})
        assert outcome.success is True
        assert outcome.payload() == {"result": 4}
        assert json.loads(outcome.to_content()) == {"result": 4}

    def test_err_payload(self):
        outcome = ToolOutcome.err("boom")
        assert outcome.success is False
        assert outcome.payload() == {"error": "boom"}
        assert json.loads(outcome.to_content()) == {"error": "boom"}

    def test_string_value_is_sent_raw(self):
        assert ToolOutcome.ok("plain text").to_content() == "plain text"


class TestRegistration:
    """도구 등록 테스트."""

    def test_register_and_lookup(self, echo_tool: Tool):
        registry = ToolRegistry()
        registry.register_tool(echo_tool)

        assert "echo" in registry
        assert len(registry) == 1
        assert registry.get("echo") is echo_tool
        assert registry.names() == ["echo"]

    def test_duplicate_name_rejected(self, echo_tool: Tool):
        registry = ToolRegistry()
        registry.register_tool(echo_tool)

        with pytest.raises(ToolAlreadyRegisteredError) as exc_info:
            registry.register("echo", {"type": "object"}, lambda: None)
        assert exc_info.value.details["tool_name"] == "echo"

    def test_unregister(self, tool_registry: ToolRegistry):
        tool_registry.unregister("echo")
        tool_registry.unregister("missing")
        assert "echo" not in tool_registry

    def test_schemas_are_openai_format(self, tool_registry: ToolRegistry):
        schemas = tool_registry.schemas()

        assert [s["function"]["name"] for s in schemas] == ["echo", "mark_task_complete"]
        echo = schemas[0]
        assert echo["type"] == "function"
        assert echo["function"]["description"] == "Echo the input"
        assert echo["function"]["parameters"]["required"] == ["text"]


class TestDispatch:
    """dispatch 테스트 - 어떤 경우에도 예외를 던지지 않음."""

    @pytest.mark.asyncio
    async def test_json_string_arguments(self, tool_registry: ToolRegistry):
        outcome = await tool_registry.dispatch("echo", '{"text": "hi"}')
        assert outcome.success
        assert outcome.value == {"echo": "hi"}

    @pytest.mark.asyncio
    async def test_dict_arguments(self, tool_registry: ToolRegistry):
        outcome = await tool_registry.dispatch("echo", {"text": "hi"})
        assert outcome.value == {"echo": "hi"}

    @pytest.mark.asyncio
    async def test_async_handler_is_awaited(self):
        async def add(a: int, b: int) -> int:
            return a + b

        registry = ToolRegistry()
        registry.register(
            "add",
            {
                "type": "object",
                "properties": {"a": {"type": "integer"}, "b": {"type": "integer"}},
                "required": ["a", "b"],
            },
            add,
        )

        outcome = await registry.dispatch("add", '{"a": 2, "b": 3}')
        assert outcome.success
        assert outcome.value == 5

    @pytest.mark.asyncio
    async def test_unknown_tool(self, tool_registry: ToolRegistry):
        outcome = await tool_registry.dispatch("nope", "{}")
        assert not outcome.success
        assert outcome.error == "Unknown tool: nope"

    @pytest.mark.asyncio
    async def test_malformed_json(self, tool_registry: ToolRegistry):
        outcome = await tool_registry.dispatch("echo", '{"text": ')
        assert not outcome.success
        assert outcome.error.startswith("Invalid tool arguments")

    @pytest.mark.asyncio
    async def test_non_object_json(self, tool_registry: ToolRegistry):
        outcome = await tool_registry.dispatch("echo", '["hi"]')
        assert not outcome.success
        assert outcome.error == "Invalid tool arguments: expected a JSON object"

    @pytest.mark.asyncio
    async def test_missing_required_argument(self, tool_registry: ToolRegistry):
        outcome = await tool_registry.dispatch("echo", "{}")
        assert not outcome.success
        assert outcome.error == "Missing required argument: text"

    @pytest.mark.asyncio
    async def test_wrong_argument_type(self, tool_registry: ToolRegistry):
        outcome = await tool_registry.dispatch("echo", '{"text": 42}')
        assert not outcome.success
        assert "expected string" in outcome.error

    @pytest.mark.asyncio
    async def test_boolean_is_not_an_integer(self):
        registry = ToolRegistry()
        registry.register(
            "count",
            {"type": "object", "properties": {"n": {"type": "integer"}}},
            lambda n: n,
        )

        outcome = await registry.dispatch("count", '{"n": true}')
        assert not outcome.success
        assert "expected integer" in outcome.error

    @pytest.mark.asyncio
    async def test_enum_violation(self):
        registry = ToolRegistry()
        registry.register(
            "pick",
            {"type": "object", "properties": {"color": {"enum": ["red", "blue"]}}},
            lambda color: color,
        )

        outcome = await registry.dispatch("pick", '{"color": "green"}')
        assert not outcome.success
        assert outcome.error.startswith("Invalid value for argument 'color'")

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_error(self):
        def explode() -> None:
            raise RuntimeError("kaboom")

        registry = ToolRegistry()
        registry.register("explode", {"type": "object", "properties": {}}, explode)

        outcome = await registry.dispatch("explode", None)
        assert not outcome.success
        assert outcome.error == "Tool execution failed: kaboom"

    @pytest.mark.asyncio
    async def test_empty_arguments_string(self):
        registry = ToolRegistry()
        registry.register("ping", {"type": "object", "properties": {}}, lambda: "pong")

        outcome = await registry.dispatch("ping", "")
        assert outcome.success
        assert outcome.to_content() == "pong"
