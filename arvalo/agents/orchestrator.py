"""Agent orchestrator: sequential workflows and parallel fan-out over registered agents.

Workflows run steps in order and thread each successful step's answer into
the next step's context under "<agent>_result"; the first failing step
aborts the rest. Parallel batches run every task concurrently and isolate
failures per task. Neither public method raises.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from arvalo.agent.engine import BaseAgent
from arvalo.agent.errors import AgentError, AgentNotFoundError, WorkflowStepError
from arvalo.agent.types import AgentInput, AgentResult

logger = logging.getLogger(__name__)

RECEIPT = "receipt"
RETURN_POLICY = "return_policy"
PRICE_DETECTIVE = "price_detective"
RECURRENT_OPTIMIZER = "recurrent_optimizer"
WARRANTY = "warranty"


# ---------------------------------------------------------------------------
# Workflow / batch types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WorkflowStep:
    """One workflow step. Hooks may be plain functions or coroutine functions."""
    agent: str
    input: AgentInput
    on_success: Optional[Callable[[AgentResult], Any]] = None
    on_error: Optional[Callable[[AgentError], Any]] = None


@dataclass(frozen=True)
class Workflow:
    name: str
    steps: Sequence[WorkflowStep]


@dataclass
class WorkflowResult:
    success: bool
    results: List[AgentResult] = field(default_factory=list)
    error: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ParallelTask:
    agent: str
    input: AgentInput


@dataclass(frozen=True)
class TaskError:
    agent: str
    error: str


@dataclass
class ParallelResult:
    success: bool
    results: List[AgentResult] = field(default_factory=list)
    errors: List[TaskError] = field(default_factory=list)


@dataclass
class PurchaseAnalysis:
    success: bool
    analysis: Dict[str, Any] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)
    errors: List[TaskError] = field(default_factory=list)


TaskOutcome = Union[AgentResult, BaseException]


async def _call_hook(hook: Callable[[Any], Any], arg: Any) -> Any:
    value = hook(arg)
    if inspect.isawaitable(value):
        value = await value
    return value


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class Orchestrator:
    """Coordinates agents registered under short keys (receipt, return_policy, ...)."""

    def __init__(self, agents: Optional[Mapping[str, BaseAgent]] = None):
        self._agents: Dict[str, BaseAgent] = dict(agents or {})

    def get_agent(self, key: str) -> Optional[BaseAgent]:
        return self._agents.get(key)

    def register_agent(self, key: str, agent: BaseAgent) -> None:
        self._agents[key] = agent

    def agent_names(self) -> List[str]:
        return list(self._agents)

    def _require(self, key: str) -> BaseAgent:
        agent = self._agents.get(key)
        if agent is None:
            raise AgentNotFoundError(f"Agent not found: {key}")
        return agent

    # ------------------------------------------------------------------
    # Sequential workflows
    # ------------------------------------------------------------------

    async def execute_workflow(
        self,
        workflow: Workflow,
        context: Optional[Dict[str, Any]] = None,
    ) -> WorkflowResult:
        """Run steps in order, threading results through the workflow context."""
        logger.info("[Orchestrator] Starting workflow: %s", workflow.name)
        results: List[AgentResult] = []
        workflow_context: Dict[str, Any] = dict(context or {})
        total = len(workflow.steps)

        try:
            for index, step in enumerate(workflow.steps, start=1):
                logger.info("[Orchestrator] Executing step %d/%d: %s", index, total, step.agent)
                agent = self._require(step.agent)

                step_input = replace(step.input, context={**step.input.context, **workflow_context})
                result = await agent.execute(step_input)
                results.append(result)

                if not result.success:
                    message = result.error or "Agent execution failed"
                    if step.on_error is not None:
                        try:
                            await _call_hook(step.on_error, AgentError(message, code=result.error_code))
                        except Exception as hook_exc:
                            logger.error("[Orchestrator] on_error hook for %s raised: %s", step.agent, hook_exc)
                    raise WorkflowStepError(f"Agent {step.agent} failed: {message}")

                workflow_context[f"{step.agent}_result"] = result.data
                if step.on_success is not None:
                    extra = await _call_hook(step.on_success, result)
                    if isinstance(extra, dict):
                        workflow_context.update(extra)
        except Exception as exc:
            logger.error("[Orchestrator] Workflow failed: %s: %s", workflow.name, exc)
            return WorkflowResult(success=False, results=results, error=_describe(exc), context=workflow_context)

        logger.info("[Orchestrator] Workflow completed: %s", workflow.name)
        return WorkflowResult(success=True, results=results, context=workflow_context)

    # ------------------------------------------------------------------
    # Parallel fan-out
    # ------------------------------------------------------------------

    async def _run_task(self, task: ParallelTask) -> AgentResult:
        return await self._require(task.agent).execute(task.input)

    async def _gather(self, tasks: Sequence[ParallelTask]) -> List[TaskOutcome]:
        """Outcome per task, in task order; exceptions are returned, not raised."""
        logger.info("[Orchestrator] Executing %d agents in parallel", len(tasks))
        return list(await asyncio.gather(*(self._run_task(t) for t in tasks), return_exceptions=True))

    async def execute_parallel(self, tasks: Sequence[ParallelTask]) -> ParallelResult:
        outcomes = await self._gather(tasks)
        results: List[AgentResult] = []
        errors: List[TaskError] = []

        for task, outcome in zip(tasks, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("[Orchestrator] Task %s raised: %s", task.agent, outcome)
                errors.append(TaskError(task.agent, _describe(outcome)))
                continue
            results.append(outcome)
            if not outcome.success:
                errors.append(TaskError(task.agent, outcome.error or "Agent execution failed"))

        return ParallelResult(success=not errors, results=results, errors=errors)

    # ------------------------------------------------------------------
    # Composite analyses
    # ------------------------------------------------------------------

    async def analyze_purchase(self, purchase_id: str, user_id: str) -> PurchaseAnalysis:
        """Return policy, price drops and recurrence for one purchase, run concurrently."""
        logger.info("[Orchestrator] Analyzing purchase: %s", purchase_id)
        context = {"purchaseId": purchase_id, "userId": user_id}
        prompts = {
            RETURN_POLICY: f"Get return policy details for purchase {purchase_id}",
            PRICE_DETECTIVE: f"Check for price drops on purchase {purchase_id}",
            RECURRENT_OPTIMIZER: f"Check if purchase {purchase_id} is part of a recurring pattern",
        }
        sections = {
            RETURN_POLICY: "return_policy",
            PRICE_DETECTIVE: "price_drops",
            RECURRENT_OPTIMIZER: "recurrent_pattern",
        }
        tasks = [
            ParallelTask(key, AgentInput(prompt=prompt, context=dict(context), user_id=user_id))
            for key, prompt in prompts.items()
        ]
        outcomes = await self._gather(tasks)

        analysis: Dict[str, Any] = {}
        recommendations: List[str] = []
        errors: List[TaskError] = []
        for task, outcome in zip(tasks, outcomes):
            if isinstance(outcome, BaseException):
                errors.append(TaskError(task.agent, _describe(outcome)))
                continue
            if not outcome.success:
                errors.append(TaskError(task.agent, outcome.error or "Agent execution failed"))
                continue
            analysis[sections[task.agent]] = outcome.data
            recommendations.extend(_recommendations_from(outcome.data))

        return PurchaseAnalysis(
            success=not errors,
            analysis=analysis,
            recommendations=list(dict.fromkeys(recommendations)),
            errors=errors,
        )


def _recommendations_from(data: Any) -> List[str]:
    if not isinstance(data, dict):
        return []
    found = [str(r) for r in data.get("recommendations") or [] if r]
    single = data.get("recommendation")
    if isinstance(single, dict):
        best = single.get("best_option")
        reasoning = single.get("reasoning")
        if best and reasoning:
            found.append(f"{best}: {reasoning}")
        elif best or reasoning:
            found.append(str(best or reasoning))
    elif single:
        found.append(str(single))
    return found
