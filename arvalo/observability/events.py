"""Typed event system for agent lifecycle observability.

Events are emitted at key points during an execute() call. Listeners
(ExecutionMonitor, loggers, metrics exporters) subscribe via the EventBus
and receive typed dataclass payloads.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from arvalo.agent.types import LoopStatus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

class EventKind(str, Enum):
    RUN_START = "run_start"
    ITERATION_START = "iteration_start"
    TOOL_DISPATCH = "tool_dispatch"
    TOOL_RESULT = "tool_result"
    RUN_END = "run_end"


@dataclass(frozen=True)
class Event:
    """Base event payload."""
    kind: EventKind
    execution_id: str
    agent_name: str
    timestamp_ms: int = field(default_factory=lambda: int(time.time() * 1000))


@dataclass(frozen=True)
class RunStartEvent(Event):
    kind: EventKind = field(default=EventKind.RUN_START, init=False)
    max_iterations: int = 0


@dataclass(frozen=True)
class IterationStartEvent(Event):
    kind: EventKind = field(default=EventKind.ITERATION_START, init=False)
    iteration: int = 0


@dataclass(frozen=True)
class ToolDispatchEvent(Event):
    kind: EventKind = field(default=EventKind.TOOL_DISPATCH, init=False)
    iteration: int = 0
    tool_name: str = ""
    tool_call_id: str = ""


@dataclass(frozen=True)
class ToolResultEvent(Event):
    kind: EventKind = field(default=EventKind.TOOL_RESULT, init=False)
    iteration: int = 0
    tool_name: str = ""
    tool_call_id: str = ""
    success: bool = True
    error: Optional[str] = None


@dataclass(frozen=True)
class RunEndEvent(Event):
    kind: EventKind = field(default=EventKind.RUN_END, init=False)
    success: bool = False
    status: LoopStatus = LoopStatus.COMPLETE
    iterations: int = 0
    tokens_used: int = 0
    cost: float = 0.0
    tools_used: List[str] = field(default_factory=list)
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Event bus
# ---------------------------------------------------------------------------

Listener = Callable[[Event], None]


class EventBus:
    """Simple synchronous pub/sub for agent events.

    Listeners are called inline, so keep them fast. A failing listener is
    logged and skipped; it never breaks the run that emitted the event.
    """

    def __init__(self):
        self._listeners: Dict[EventKind, List[Listener]] = {}
        self._global_listeners: List[Listener] = []

    def on(self, kind: EventKind, listener: Listener) -> None:
        """Subscribe to a specific event kind."""
        self._listeners.setdefault(kind, []).append(listener)

    def on_all(self, listener: Listener) -> None:
        """Subscribe to every event kind."""
        self._global_listeners.append(listener)

    def emit(self, event: Event) -> None:
        """Dispatch an event to all matching listeners."""
        for listener in self._global_listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Global event listener error for %s", event.kind)

        for listener in self._listeners.get(event.kind, []):
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener error for %s", event.kind)
