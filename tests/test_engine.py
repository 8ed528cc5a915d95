"""Unit tests for arvalo.agent.engine: the bounded tool-use loop."""

import asyncio
import json

import pytest
from pydantic import BaseModel

from agent_stubs import ScriptedProvider, call, text_reply, tool_reply
from arvalo.agent.engine import BaseAgent
from arvalo.agent.errors import ProviderError
from arvalo.agent.pricing import rate_card_pricing
from arvalo.agent.types import AgentInput, LoopStatus, RetryPolicy, ToolResultBlock
from arvalo.cache_store import AgentCache
from arvalo.observability.events import EventBus, EventKind


def _agent(config, provider, *tools, **kwargs):
    kwargs.setdefault("retry_policy", RetryPolicy(max_retries=0, base_delay_s=0.0, timeout_s=None))
    return BaseAgent(config, provider, tools=tools, **kwargs)


def _results_in(message):
    return [b for b in message.blocks() if isinstance(b, ToolResultBlock)]


class TestEchoScenario:
    @pytest.mark.asyncio
    async def test_tool_then_answer(self, agent_config, echo_tool):
        provider = ScriptedProvider(
            tool_reply(call("echo", "c1", x=1)),
            text_reply({"ok": True}),
        )
        agent = _agent(agent_config, provider, echo_tool)

        result = await agent.execute(AgentInput(prompt="echo 1"))

        assert result.success is True
        assert result.iterations == 2
        assert result.tools_used == ["echo"]
        assert result.data == {"ok": True}
        assert result.status == LoopStatus.COMPLETE
        assert result.error is None

    @pytest.mark.asyncio
    async def test_conversation_shape(self, agent_config, echo_tool):
        provider = ScriptedProvider(
            tool_reply(call("echo", "c1", x=1)),
            text_reply({"ok": True}),
        )
        agent = _agent(agent_config, provider, echo_tool)
        await agent.execute(AgentInput(prompt="echo 1"))

        messages = provider.requests[1].messages
        assert [m.role for m in messages] == ["user", "assistant", "user"]
        results = _results_in(messages[2])
        assert len(results) == 1
        assert results[0].tool_call_id == "c1"
        assert json.loads(results[0].content) == {"success": True, "data": {"x": 1}}

    @pytest.mark.asyncio
    async def test_request_carries_config_and_schemas(self, agent_config, echo_tool):
        provider = ScriptedProvider(text_reply("done"))
        agent = _agent(agent_config, provider, echo_tool)
        await agent.execute(AgentInput(prompt="hi"))

        request = provider.requests[0]
        assert request.system_prompt == "You are a test agent."
        assert request.model == agent_config.model
        assert request.temperature == agent_config.temperature
        assert request.tools == [echo_tool.to_schema()]


class TestTermination:
    @pytest.mark.asyncio
    async def test_exhausted_at_one_iteration(self, agent_config, echo_tool):
        provider = ScriptedProvider(tool_reply(call("echo", x=1)), repeat_last=True)
        agent = _agent(agent_config, provider, echo_tool)

        result = await agent.execute(AgentInput(prompt="loop", max_iterations=1))

        assert result.success is True
        assert result.iterations == 1
        assert result.data is None
        assert result.status == LoopStatus.EXHAUSTED
        assert len(provider.requests) == 1

    @pytest.mark.asyncio
    async def test_never_exceeds_configured_limit(self, agent_config, echo_tool):
        provider = ScriptedProvider(tool_reply(call("echo", x=1)), repeat_last=True)
        agent = _agent(agent_config, provider, echo_tool)

        result = await agent.execute(AgentInput(prompt="loop"))

        assert result.iterations == agent_config.max_iterations
        assert len(provider.requests) == agent_config.max_iterations
        assert result.tools_used == ["echo"] * agent_config.max_iterations

    @pytest.mark.asyncio
    async def test_text_only_response_completes(self, agent_config):
        provider = ScriptedProvider(text_reply("plain answer", stop_reason="max_tokens"))
        agent = _agent(agent_config, provider)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is True
        assert result.iterations == 1
        assert result.data == "plain answer"
        assert result.reasoning == ["plain answer"]

    @pytest.mark.asyncio
    async def test_end_turn_with_tool_calls_runs_tools_then_stops(self, agent_config, echo_tool):
        provider = ScriptedProvider(
            tool_reply(call("echo", x=2), text="final words", stop_reason="end_turn"),
        )
        agent = _agent(agent_config, provider, echo_tool)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.iterations == 1
        assert result.tools_used == ["echo"]
        assert result.data == "final words"


class TestToolDispatch:
    @pytest.mark.asyncio
    async def test_unknown_tool_becomes_error_result(self, agent_config, echo_tool):
        provider = ScriptedProvider(
            tool_reply(call("missing", "c9")),
            text_reply("recovered"),
        )
        agent = _agent(agent_config, provider, echo_tool)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is True
        assert result.tools_used == ["missing"]
        payload = json.loads(_results_in(provider.requests[1].messages[2])[0].content)
        assert payload == {"success": False, "error": "Tool missing not found"}

    @pytest.mark.asyncio
    async def test_tool_exception_is_contained(self, agent_config, failing_tool):
        provider = ScriptedProvider(
            tool_reply(call("explode")),
            text_reply("handled"),
        )
        agent = _agent(agent_config, provider, failing_tool)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is True
        payload = json.loads(_results_in(provider.requests[1].messages[2])[0].content)
        assert payload == {"success": False, "error": "boom"}

    @pytest.mark.asyncio
    async def test_multiple_calls_answered_in_one_turn_in_order(self, agent_config, echo_tool, failing_tool):
        provider = ScriptedProvider(
            tool_reply(call("echo", "a", x=1), call("explode", "b"), call("echo", "c", x=3)),
            text_reply("ok"),
        )
        agent = _agent(agent_config, provider, echo_tool, failing_tool)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.tools_used == ["echo", "explode", "echo"]
        messages = provider.requests[1].messages
        assert len(messages) == 3
        results = _results_in(messages[2])
        assert [r.tool_call_id for r in results] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_text_alongside_calls_is_reasoning(self, agent_config, echo_tool):
        provider = ScriptedProvider(
            tool_reply(call("echo", x=1), text="Let me check."),
            text_reply("done"),
        )
        agent = _agent(agent_config, provider, echo_tool)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.reasoning == ["Let me check.", "done"]


class TestTokensAndCost:
    @pytest.mark.asyncio
    async def test_tokens_accumulate(self, agent_config, echo_tool):
        provider = ScriptedProvider(
            tool_reply(call("echo", x=1), input_tokens=100, output_tokens=20),
            text_reply("done", input_tokens=150, output_tokens=30),
        )
        agent = _agent(agent_config, provider, echo_tool)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.tokens_used == 300
        assert result.cost == pytest.approx(300 * 0.000009)

    @pytest.mark.asyncio
    async def test_custom_pricing(self, agent_config):
        provider = ScriptedProvider(text_reply("done", input_tokens=1000, output_tokens=500))
        agent = _agent(agent_config, provider, pricing=rate_card_pricing(1000.0, 2000.0))

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.cost == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_tokens_monotonic_across_iterations(self, agent_config, echo_tool):
        provider = ScriptedProvider(tool_reply(call("echo", x=1)), repeat_last=True)
        bus = EventBus()
        agent = _agent(agent_config, provider, echo_tool, bus=bus)

        seen = []
        for limit in (1, 2, 3):
            result = await agent.execute(AgentInput(prompt="hi", max_iterations=limit))
            seen.append(result.tokens_used)

        assert seen == sorted(seen)
        assert seen[0] < seen[-1]


class TestProviderFailures:
    @pytest.mark.asyncio
    async def test_non_retriable_failure_returns_failed_result(self, agent_config):
        provider = ScriptedProvider(RuntimeError("api down"))
        agent = _agent(agent_config, provider)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is False
        assert result.error == "api down"
        assert result.error_code == "provider_error"
        assert result.status == LoopStatus.FAILED
        assert result.iterations == 1

    @pytest.mark.asyncio
    async def test_failure_keeps_partial_state(self, agent_config, echo_tool):
        provider = ScriptedProvider(
            tool_reply(call("echo", x=1), input_tokens=7, output_tokens=3),
            ProviderError("overloaded", retriable=False),
        )
        agent = _agent(agent_config, provider, echo_tool)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is False
        assert result.tools_used == ["echo"]
        assert result.tokens_used == 10
        assert result.iterations == 2

    @pytest.mark.asyncio
    async def test_retriable_failure_is_retried(self, agent_config, fast_retry):
        provider = ScriptedProvider(
            ProviderError("rate limited", retriable=True),
            ConnectionError("reset"),
            text_reply("finally"),
        )
        agent = BaseAgent(agent_config, provider, retry_policy=fast_retry)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is True
        assert result.data == "finally"
        assert result.iterations == 1
        assert len(provider.requests) == 3

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, agent_config, fast_retry):
        provider = ScriptedProvider(ProviderError("rate limited", retriable=True), repeat_last=True)
        agent = BaseAgent(agent_config, provider, retry_policy=fast_retry)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is False
        assert result.error_code == "provider_error"
        assert len(provider.requests) == fast_retry.max_retries + 1

    @pytest.mark.asyncio
    async def test_non_retriable_is_not_retried(self, agent_config, fast_retry):
        provider = ScriptedProvider(ProviderError("bad request", retriable=False), text_reply("never"))
        agent = BaseAgent(agent_config, provider, retry_policy=fast_retry)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is False
        assert len(provider.requests) == 1


class TestDeadlines:
    @pytest.mark.asyncio
    async def test_run_deadline(self, agent_config):
        async def slow(request):
            await asyncio.sleep(5)
            return text_reply("late")

        agent = _agent(agent_config, ScriptedProvider(slow))

        result = await agent.execute(AgentInput(prompt="hi", timeout_s=0.05))

        assert result.success is False
        assert result.error_code == "timeout"
        assert result.status == LoopStatus.FAILED

    @pytest.mark.asyncio
    async def test_model_call_timeout(self, agent_config):
        async def slow(request):
            await asyncio.sleep(5)
            return text_reply("late")

        policy = RetryPolicy(max_retries=0, base_delay_s=0.0, timeout_s=0.05)
        agent = BaseAgent(agent_config, ScriptedProvider(slow), retry_policy=policy, timeout_s=None)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is False
        assert result.error_code == "timeout"


class _Answer(BaseModel):
    ok: bool


class TestAnswerValidation:
    @pytest.mark.asyncio
    async def test_valid_answer(self, agent_config):
        provider = ScriptedProvider(text_reply('```json\n{"ok": true, "extra": 1}\n```'))
        agent = _agent(agent_config, provider)

        result = await agent.execute(AgentInput(prompt="hi"), answer_model=_Answer)

        assert result.success is True
        assert result.data == {"ok": True}

    @pytest.mark.asyncio
    async def test_malformed_answer(self, agent_config):
        provider = ScriptedProvider(text_reply("I could not figure it out"))
        agent = _agent(agent_config, provider)

        result = await agent.execute(AgentInput(prompt="hi"), answer_model=_Answer)

        assert result.success is False
        assert result.error_code == "malformed_answer"
        assert result.data == "I could not figure it out"


class TestInitialPrompt:
    def test_context_appended_as_json(self, agent_config):
        agent = _agent(agent_config, ScriptedProvider())
        prompt = agent.build_initial_prompt(AgentInput(prompt="Task", context={"userId": "u1"}))
        assert prompt == 'Task\n\nContext:\n{\n  "userId": "u1"\n}'

    def test_no_context(self, agent_config):
        agent = _agent(agent_config, ScriptedProvider())
        assert agent.build_initial_prompt(AgentInput(prompt="Task")) == "Task"


class TestEvents:
    @pytest.mark.asyncio
    async def test_lifecycle_events(self, agent_config, echo_tool):
        bus = EventBus()
        kinds = []
        bus.on_all(lambda e: kinds.append(e.kind))
        provider = ScriptedProvider(tool_reply(call("echo", x=1)), text_reply("done"))
        agent = _agent(agent_config, provider, echo_tool, bus=bus)

        await agent.execute(AgentInput(prompt="hi"))

        assert kinds == [
            EventKind.RUN_START,
            EventKind.ITERATION_START,
            EventKind.TOOL_DISPATCH,
            EventKind.TOOL_RESULT,
            EventKind.ITERATION_START,
            EventKind.RUN_END,
        ]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_run(self, agent_config):
        bus = EventBus()

        def bad_listener(event):
            raise RuntimeError("listener bug")

        bus.on_all(bad_listener)
        agent = _agent(agent_config, ScriptedProvider(text_reply("done")), bus=bus)

        result = await agent.execute(AgentInput(prompt="hi"))

        assert result.success is True


class TestExecuteCached:
    @pytest.mark.asyncio
    async def test_second_call_hits_cache(self, agent_config):
        provider = ScriptedProvider(text_reply({"v": 1}))
        agent = _agent(agent_config, provider, cache=AgentCache())

        first = await agent.execute_cached(AgentInput(prompt="hi"), "key")
        second = await agent.execute_cached(AgentInput(prompt="hi"), "key")

        assert first.data == {"v": 1}
        assert second is first
        assert len(provider.requests) == 1

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, agent_config):
        provider = ScriptedProvider(RuntimeError("down"), text_reply("ok"))
        agent = _agent(agent_config, provider, cache=AgentCache())

        first = await agent.execute_cached(AgentInput(prompt="hi"), "key")
        second = await agent.execute_cached(AgentInput(prompt="hi"), "key")

        assert first.success is False
        assert second.success is True
        assert len(provider.requests) == 2

    @pytest.mark.asyncio
    async def test_without_cache_executes(self, agent_config):
        provider = ScriptedProvider(text_reply("a"), text_reply("b"))
        agent = _agent(agent_config, provider)

        await agent.execute_cached(AgentInput(prompt="hi"), "key")
        second = await agent.execute_cached(AgentInput(prompt="hi"), "key")

        assert second.data == "b"
