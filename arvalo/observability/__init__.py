"""Observability for agent runs: event bus and execution monitor."""

from arvalo.observability.events import EventBus, EventKind
from arvalo.observability.monitor import ExecutionMetric, ExecutionMonitor

__all__ = ["EventBus", "EventKind", "ExecutionMetric", "ExecutionMonitor"]
