"""LLM Gateway 재시도 동작 테스트."""

import pytest

from heavy.llm.gateway import LLMGateway
from heavy.models import Message
from heavy.utils.config import RetryConfig
from heavy.utils.exceptions import GatewayError
from tests.stubs import ScriptedProvider, make_gateway, tool_call


class TestRetryConfig:
    """RetryConfig 테스트."""

    def test_exponential_delays(self):
        retry = RetryConfig(initial_delay=1.0, multiplier=2.0, max_delay=30.0)
        assert [retry.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_delay_is_capped(self):
        retry = RetryConfig(initial_delay=10.0, multiplier=3.0, max_delay=25.0)
        assert retry.delay_for(3) == 25.0


class TestLLMGateway:
    """LLMGateway 테스트."""

    @pytest.mark.asyncio
    async def test_returns_assistant_message(self):
        provider = ScriptedProvider(["hello"])
        gateway = make_gateway(provider)

        message = await gateway.complete([Message.user("hi")])

        assert message.content == "hello"
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_forwards_tool_schemas(self):
        provider = ScriptedProvider([Message.assistant("", [tool_call("echo", {"text": "x"})])])
        gateway = make_gateway(provider)
        schemas = [{"type": "function", "function": {"name": "echo"}}]

        message = await gateway.complete([Message.user("hi")], schemas)

        assert message.tool_calls[0].name == "echo"
        assert provider.calls[0]["tools"] == schemas

    @pytest.mark.asyncio
    async def test_empty_tool_list_sent_as_none(self):
        provider = ScriptedProvider(["ok"])
        await make_gateway(provider).complete([Message.user("hi")], [])
        assert provider.calls[0]["tools"] is None

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self):
        provider = ScriptedProvider(
            [ConnectionError("reset"), TimeoutError("slow"), "finally"]
        )
        gateway = make_gateway(provider)

        message = await gateway.complete([Message.user("hi")])

        assert message.content == "finally"
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_empty_choices_are_retried(self):
        provider = ScriptedProvider([None, "recovered"])
        message = await make_gateway(provider).complete([Message.user("hi")])

        assert message.content == "recovered"
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_budget(self):
        provider = ScriptedProvider(responder=lambda messages, tools: ConnectionError("down"))
        gateway = make_gateway(provider, max_retries=3)

        with pytest.raises(GatewayError) as exc_info:
            await gateway.complete([Message.user("hi")])

        assert len(provider.calls) == 4
        assert exc_info.value.details["attempts"] == 4
        assert "down" in exc_info.value.message
        assert isinstance(exc_info.value.cause, ConnectionError)

    @pytest.mark.asyncio
    async def test_no_retries_configured(self):
        provider = ScriptedProvider(responder=lambda messages, tools: ConnectionError("down"))

        with pytest.raises(GatewayError):
            await make_gateway(provider, max_retries=0).complete([Message.user("hi")])

        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_backoff_delays(self):
        delays: list[float] = []

        async def record_sleep(seconds: float) -> None:
            delays.append(seconds)

        provider = ScriptedProvider(responder=lambda messages, tools: ConnectionError("down"))
        gateway = LLMGateway(
            provider,
            retry=RetryConfig(max_retries=3, initial_delay=1.0, multiplier=2.0),
            sleep=record_sleep,
        )

        with pytest.raises(GatewayError):
            await gateway.complete([Message.user("hi")])

        assert delays == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_passes_generation_settings(self):
        captured: dict = {}

        class RecordingProvider(ScriptedProvider):
            async def complete(self, messages, tools=None, model=None, max_tokens=4096, temperature=0.7, **kwargs):
                captured.update(model=model, max_tokens=max_tokens, temperature=temperature)
                return await super().complete(messages, tools, model)

        provider = RecordingProvider(["ok"])
        gateway = LLMGateway(provider, model="m-1", temperature=0.2, max_tokens=64)
        await gateway.complete([Message.user("hi")])

        assert captured == {"model": "m-1", "max_tokens": 64, "temperature": 0.2}
