"""Agent engine: the bounded tool-use loop behind every agent.

BaseAgent.execute() drives the loop:
  model call  -> ask the provider for the next response
  dispatch    -> run every requested tool, in the order the model listed them
  observe     -> feed the results back as the next user turn
until the model answers without tools, says end_turn, or the iteration
limit is hit. Every outcome, including provider failures and deadline
expiry, comes back as an AgentResult; execute() never raises.

Observability:
  Lifecycle events go to an EventBus so listeners (ExecutionMonitor,
  loggers) can observe runs without coupling to engine internals.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional, Type

from pydantic import BaseModel

from arvalo.agent.answers import extract_final_answer, validate_answer
from arvalo.agent.errors import AgentError, AgentTimeoutError, MalformedAnswerError, ProviderError
from arvalo.agent.pricing import blended_pricing
from arvalo.agent.providers.base import LLMAdapter
from arvalo.agent.registry import ToolRegistry
from arvalo.agent.types import (
    AgentConfig,
    AgentInput,
    AgentMessage,
    AgentResult,
    AgentState,
    Completion,
    CompletionRequest,
    LoopStatus,
    PricingFn,
    RetryPolicy,
    TextBlock,
    Tool,
    ToolCallBlock,
    ToolOutcome,
    ToolResultBlock,
)
from arvalo.cache_store import AgentCache
from arvalo.observability.events import (
    EventBus,
    IterationStartEvent,
    RunEndEvent,
    RunStartEvent,
    ToolDispatchEvent,
    ToolResultEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 120.0
END_TURN = "end_turn"


class BaseAgent:
    """A configured loop: system prompt, model parameters and a tool set."""

    def __init__(
        self,
        config: AgentConfig,
        provider: LLMAdapter,
        *,
        tools: Optional[Iterable[Tool]] = None,
        retry_policy: Optional[RetryPolicy] = None,
        pricing: Optional[PricingFn] = None,
        timeout_s: Optional[float] = DEFAULT_TIMEOUT_S,
        bus: Optional[EventBus] = None,
        cache: Optional[AgentCache] = None,
    ):
        self.config = config
        self.provider = provider
        self.registry = ToolRegistry(tools)
        self.retry_policy = retry_policy or RetryPolicy()
        self.pricing = pricing or blended_pricing()
        self.timeout_s = timeout_s
        self.bus = bus or EventBus()
        self.cache = cache

    @property
    def name(self) -> str:
        return self.config.name

    # ------------------------------------------------------------------
    # Tool registry passthrough
    # ------------------------------------------------------------------

    def add_tool(self, tool: Tool) -> None:
        self.registry.add_tool(tool)

    def add_tools(self, tools: Iterable[Tool]) -> None:
        self.registry.add_tools(tools)

    def get_tools(self) -> List[Tool]:
        return self.registry.get_tools()

    def get_config(self) -> AgentConfig:
        return self.config

    async def execute_tool(self, name: str, params: Optional[Dict[str, Any]]) -> ToolOutcome:
        return await self.registry.execute_tool(name, params)

    # ------------------------------------------------------------------
    # Top-level entry points
    # ------------------------------------------------------------------

    async def execute(
        self,
        agent_input: AgentInput,
        *,
        answer_model: Optional[Type[BaseModel]] = None,
    ) -> AgentResult:
        """Run the loop for one task and return its result."""
        max_iterations = agent_input.max_iterations or self.config.max_iterations
        timeout_s = agent_input.timeout_s if agent_input.timeout_s is not None else self.timeout_s
        execution_id = f"{self.name}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        state = AgentState()

        self.bus.emit(RunStartEvent(
            execution_id=execution_id,
            agent_name=self.name,
            max_iterations=max_iterations,
        ))

        error: Optional[AgentError] = None
        try:
            loop = self._run_loop(state, agent_input, max_iterations, execution_id)
            if timeout_s:
                await asyncio.wait_for(loop, timeout=timeout_s)
            else:
                await loop
        except asyncio.TimeoutError:
            error = AgentTimeoutError(f"Agent {self.name} timed out after {timeout_s}s")
        except AgentError as exc:
            error = exc
        except Exception as exc:
            logger.error("[%s] Execution failed: %s", self.name, exc, exc_info=True)
            error = AgentError(str(exc) or exc.__class__.__name__)

        if error is not None:
            state.status = LoopStatus.FAILED
            logger.warning("[%s] Execution failed (%s): %s", self.name, error.code, error)

        result = self._finalize(state, error, answer_model)
        self.bus.emit(RunEndEvent(
            execution_id=execution_id,
            agent_name=self.name,
            success=result.success,
            status=result.status,
            iterations=result.iterations,
            tokens_used=result.tokens_used,
            cost=result.cost,
            tools_used=list(result.tools_used),
            error=result.error,
        ))
        return result

    async def execute_cached(
        self,
        agent_input: AgentInput,
        cache_key: str,
        ttl_s: Optional[float] = None,
        *,
        answer_model: Optional[Type[BaseModel]] = None,
    ) -> AgentResult:
        """execute(), reusing a cached successful result stored under cache_key."""
        if self.cache is None:
            return await self.execute(agent_input, answer_model=answer_model)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info("[%s] Cache hit for %s", self.name, cache_key)
            return cached

        result = await self.execute(agent_input, answer_model=answer_model)
        if result.success:
            self.cache.set(cache_key, result, ttl_s)
        return result

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _run_loop(
        self,
        state: AgentState,
        agent_input: AgentInput,
        max_iterations: int,
        execution_id: str,
    ) -> None:
        state.messages.append(AgentMessage(role="user", content=self.build_initial_prompt(agent_input)))
        tool_schemas = self.registry.get_schemas()

        while state.iterations < max_iterations and not state.is_complete:
            state.iterations += 1
            logger.info("[%s] Iteration %d/%d", self.name, state.iterations, max_iterations)
            self.bus.emit(IterationStartEvent(
                execution_id=execution_id,
                agent_name=self.name,
                iteration=state.iterations,
            ))

            completion = await self._complete(CompletionRequest(
                model=self.config.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system_prompt=self.config.system_prompt,
                messages=list(state.messages),
                tools=tool_schemas,
            ))
            state.record_usage(completion.usage)
            await self._process_completion(completion, state, execution_id)

        if state.is_complete:
            state.status = LoopStatus.COMPLETE
        else:
            state.status = LoopStatus.EXHAUSTED
            logger.warning("[%s] Stopped at iteration limit (%d)", self.name, max_iterations)

    async def _process_completion(
        self,
        completion: Completion,
        state: AgentState,
        execution_id: str,
    ) -> None:
        """Record reasoning, run requested tools and append both turns."""
        content = [b for b in completion.content if isinstance(b, (TextBlock, ToolCallBlock))]
        calls = [b for b in content if isinstance(b, ToolCallBlock)]

        for block in content:
            if isinstance(block, TextBlock):
                state.reasoning.append(block.text)

        state.messages.append(AgentMessage(role="assistant", content=tuple(content)))

        results: List[ToolResultBlock] = []
        for call in calls:
            state.tools_used.append(call.name)
            self.bus.emit(ToolDispatchEvent(
                execution_id=execution_id,
                agent_name=self.name,
                iteration=state.iterations,
                tool_name=call.name,
                tool_call_id=call.id,
            ))
            outcome = await self.execute_tool(call.name, call.input)
            self.bus.emit(ToolResultEvent(
                execution_id=execution_id,
                agent_name=self.name,
                iteration=state.iterations,
                tool_name=call.name,
                tool_call_id=call.id,
                success=outcome.success,
                error=outcome.error,
            ))
            results.append(ToolResultBlock(
                tool_call_id=call.id,
                content=json.dumps(outcome.to_payload(), default=str),
            ))

        if results:
            state.messages.append(AgentMessage(role="user", content=tuple(results)))

        if not calls or completion.stop_reason == END_TURN:
            state.is_complete = True

    async def _complete(self, request: CompletionRequest) -> Completion:
        """One model call under the retry/timeout policy."""
        policy = self.retry_policy
        attempt = 0
        while True:
            try:
                if policy.timeout_s:
                    return await asyncio.wait_for(self.provider.complete(request), timeout=policy.timeout_s)
                return await self.provider.complete(request)
            except asyncio.TimeoutError:
                error: AgentError = AgentTimeoutError(f"Model call timed out after {policy.timeout_s}s")
            except AgentError as exc:
                error = exc
            except (ConnectionError, OSError) as exc:
                error = ProviderError(str(exc) or exc.__class__.__name__, retriable=True)
            except Exception as exc:
                error = ProviderError(str(exc) or exc.__class__.__name__, retriable=False)

            attempt += 1
            if not error.retriable or attempt > policy.max_retries:
                raise error
            delay = policy.delay_for(attempt)
            logger.warning(
                "[%s] Model call failed (attempt %d/%d), retrying in %.1fs: %s",
                self.name,
                attempt,
                policy.max_retries + 1,
                delay,
                error,
            )
            await asyncio.sleep(delay)

    # ------------------------------------------------------------------
    # Prompt / finalization
    # ------------------------------------------------------------------

    def build_initial_prompt(self, agent_input: AgentInput) -> str:
        prompt = agent_input.prompt
        if agent_input.context:
            prompt += "\n\nContext:\n" + json.dumps(agent_input.context, indent=2, default=str)
        return prompt

    def _finalize(
        self,
        state: AgentState,
        error: Optional[AgentError],
        answer_model: Optional[Type[BaseModel]],
    ) -> AgentResult:
        cost = self.pricing(state.input_tokens, state.output_tokens)
        common = dict(
            reasoning=list(state.reasoning),
            tools_used=list(state.tools_used),
            tokens_used=state.tokens_used,
            iterations=state.iterations,
            cost=cost,
            status=state.status,
        )

        if error is not None:
            return AgentResult(success=False, data=None, error=str(error), error_code=error.code, **common)

        answer = extract_final_answer(state.messages)
        if state.status is LoopStatus.EXHAUSTED:
            # Best-effort answer; may be None or partial, so it is not validated.
            return AgentResult(success=True, data=answer, **common)

        try:
            data = validate_answer(answer, answer_model)
        except MalformedAnswerError as exc:
            logger.warning("[%s] %s", self.name, exc)
            return AgentResult(success=False, data=answer, error=str(exc), error_code=exc.code, **common)

        return AgentResult(success=True, data=data, **common)
