"""Execution monitor: bounded in-memory metrics for agent runs.

The monitor listens to RUN_START / RUN_END events and keeps the most recent
executions in a ring buffer. It is observational only and lives in a single
process; a multi-process deployment would need a shared metrics store
behind the same methods.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

from arvalo.observability.events import Event, EventBus, EventKind, RunEndEvent, RunStartEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_METRICS = 1000


@dataclass
class ExecutionMetric:
    """One execute() call as seen by the monitor."""
    agent_name: str
    execution_id: str
    start_time: float
    end_time: Optional[float] = None
    duration_ms: Optional[int] = None
    success: bool = False
    iterations: int = 0
    tokens_used: int = 0
    cost: float = 0.0
    tools_used: List[str] = field(default_factory=list)
    error: Optional[str] = None


class ExecutionMonitor:
    """Ring buffer of ExecutionMetric with aggregate statistics."""

    def __init__(self, max_metrics: int = DEFAULT_MAX_METRICS):
        self.max_metrics = max_metrics
        self._metrics: Deque[ExecutionMetric] = deque(maxlen=max_metrics)
        self._open: Dict[str, ExecutionMetric] = {}

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def attach(self, bus: EventBus) -> None:
        bus.on(EventKind.RUN_START, self._on_run_start)
        bus.on(EventKind.RUN_END, self._on_run_end)

    def _on_run_start(self, event: Event) -> None:
        e: RunStartEvent = event  # type: ignore[assignment]
        self.start_execution(e.agent_name, e.execution_id)

    def _on_run_end(self, event: Event) -> None:
        e: RunEndEvent = event  # type: ignore[assignment]
        self.end_execution(
            e.execution_id,
            e.success,
            iterations=e.iterations,
            tokens_used=e.tokens_used,
            cost=e.cost,
            tools_used=e.tools_used,
            error=e.error,
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def start_execution(self, agent_name: str, execution_id: str) -> ExecutionMetric:
        metric = ExecutionMetric(
            agent_name=agent_name,
            execution_id=execution_id,
            start_time=time.time(),
        )
        if len(self._metrics) == self._metrics.maxlen:
            evicted = self._metrics[0]
            self._open.pop(evicted.execution_id, None)
        self._metrics.append(metric)
        self._open[execution_id] = metric
        logger.info("Started %s execution: %s", agent_name, execution_id)
        return metric

    def end_execution(
        self,
        execution_id: str,
        success: bool,
        *,
        iterations: int = 0,
        tokens_used: int = 0,
        cost: float = 0.0,
        tools_used: Optional[List[str]] = None,
        error: Optional[str] = None,
    ) -> Optional[ExecutionMetric]:
        metric = self._open.pop(execution_id, None)
        if metric is None:
            logger.error("Execution not found: %s", execution_id)
            return None

        metric.end_time = time.time()
        metric.duration_ms = int((metric.end_time - metric.start_time) * 1000)
        metric.success = success
        metric.iterations = iterations
        metric.tokens_used = tokens_used
        metric.cost = cost
        metric.tools_used = list(tools_used or [])
        metric.error = error

        logger.info(
            "Completed %s in %dms: success=%s iterations=%d tokens=%d cost=$%.4f tools=%s",
            metric.agent_name,
            metric.duration_ms,
            success,
            iterations,
            tokens_used,
            cost,
            metric.tools_used,
        )
        return metric

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_agent_metrics(self, agent_name: str) -> List[ExecutionMetric]:
        return [m for m in self._metrics if m.agent_name == agent_name]

    def get_all_metrics(self) -> List[ExecutionMetric]:
        return list(self._metrics)

    def get_stats(self) -> Dict[str, Any]:
        """Aggregate statistics over the retained executions."""
        metrics = list(self._metrics)
        total = len(metrics)
        if total == 0:
            return {
                "total_executions": 0,
                "success_rate": 0.0,
                "average_duration_ms": 0.0,
                "average_iterations": 0.0,
                "total_tokens": 0,
                "total_cost": 0.0,
                "by_agent": {},
            }

        by_agent: Dict[str, Dict[str, Any]] = {}
        for name in dict.fromkeys(m.agent_name for m in metrics):
            agent_metrics = [m for m in metrics if m.agent_name == name]
            count = len(agent_metrics)
            by_agent[name] = {
                "executions": count,
                "success_rate": sum(m.success for m in agent_metrics) / count * 100,
                "avg_duration_ms": sum(m.duration_ms or 0 for m in agent_metrics) / count,
                "total_cost": sum(m.cost for m in agent_metrics),
            }

        return {
            "total_executions": total,
            "success_rate": sum(m.success for m in metrics) / total * 100,
            "average_duration_ms": sum(m.duration_ms or 0 for m in metrics) / total,
            "average_iterations": sum(m.iterations for m in metrics) / total,
            "total_tokens": sum(m.tokens_used for m in metrics),
            "total_cost": sum(m.cost for m in metrics),
            "by_agent": by_agent,
        }

    def clear(self) -> None:
        self._metrics.clear()
        self._open.clear()
