"""Core type primitives for the agentic loop, tools and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union


# ---------------------------------------------------------------------------
# Loop status
# ---------------------------------------------------------------------------

class LoopStatus(str, Enum):
    """Where a single execute() call ended up."""
    RUNNING = "running"
    COMPLETE = "complete"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

ToolExecutor = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
    """A named, schema-described async capability an agent may invoke."""
    name: str
    description: str
    input_schema: Dict[str, Any]
    executor: ToolExecutor

    def to_schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass(frozen=True)
class ToolOutcome:
    """Normalized result of dispatching one tool call."""
    success: bool
    data: Any = None
    error: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


# ---------------------------------------------------------------------------
# Conversation content
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TextBlock:
    text: str
    type: str = field(default="text", init=False)


@dataclass(frozen=True)
class ToolCallBlock:
    """The model asking for a tool invocation."""
    id: str
    name: str
    input: Dict[str, Any]
    type: str = field(default="tool_call", init=False)


@dataclass(frozen=True)
class ToolResultBlock:
    """A tool outcome fed back to the model, keyed by the call id."""
    tool_call_id: str
    content: str
    type: str = field(default="tool_result", init=False)


ContentBlock = Union[TextBlock, ToolCallBlock, ToolResultBlock]


@dataclass(frozen=True)
class AgentMessage:
    """One conversation turn. Content is plain text or a tuple of blocks."""
    role: str
    content: Union[str, Tuple[ContentBlock, ...]]

    def blocks(self) -> Tuple[ContentBlock, ...]:
        if isinstance(self.content, str):
            return (TextBlock(self.content),)
        return self.content


# ---------------------------------------------------------------------------
# Model completion capability
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class CompletionRequest:
    """Everything a provider needs for one model call."""
    model: str
    max_tokens: int
    temperature: float
    system_prompt: str
    messages: List[AgentMessage]
    tools: List[Dict[str, Any]]


@dataclass(frozen=True)
class Completion:
    """Provider-neutral model response."""
    content: List[Union[TextBlock, ToolCallBlock]]
    usage: Usage = field(default_factory=Usage)
    stop_reason: Optional[str] = None


@dataclass(frozen=True)
class RetryPolicy:
    """Retry/timeout policy applied to every model call."""
    max_retries: int = 2
    base_delay_s: float = 1.0
    max_delay_s: float = 8.0
    timeout_s: Optional[float] = 60.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (1-based)."""
        return min(self.base_delay_s * (2 ** (attempt - 1)), self.max_delay_s)


PricingFn = Callable[[int, int], float]


# ---------------------------------------------------------------------------
# Agent configuration / input / state / result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AgentConfig:
    """Static configuration of an agent, fixed at construction."""
    name: str
    description: str
    system_prompt: str
    model: str = "claude-3-haiku-20240307"
    max_iterations: int = 10
    temperature: float = 0.7
    max_tokens: int = 4096


@dataclass(frozen=True)
class AgentInput:
    """Per-invocation input to BaseAgent.execute()."""
    prompt: str
    context: Dict[str, Any] = field(default_factory=dict)
    max_iterations: Optional[int] = None
    user_id: Optional[str] = None
    timeout_s: Optional[float] = None


@dataclass
class AgentState:
    """Mutable state owned by one execute() call."""
    messages: List[AgentMessage] = field(default_factory=list)
    iterations: int = 0
    tools_used: List[str] = field(default_factory=list)
    reasoning: List[str] = field(default_factory=list)
    tokens_used: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    is_complete: bool = False
    status: LoopStatus = LoopStatus.RUNNING

    def record_usage(self, usage: Usage) -> None:
        self.input_tokens += max(usage.input_tokens, 0)
        self.output_tokens += max(usage.output_tokens, 0)
        self.tokens_used = self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class AgentResult:
    """Final outcome of one execute() call."""
    success: bool
    data: Any = None
    reasoning: List[str] = field(default_factory=list)
    tools_used: List[str] = field(default_factory=list)
    tokens_used: int = 0
    iterations: int = 0
    cost: float = 0.0
    error: Optional[str] = None
    error_code: Optional[str] = None
    status: LoopStatus = LoopStatus.COMPLETE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "reasoning": list(self.reasoning),
            "tools_used": list(self.tools_used),
            "tokens_used": self.tokens_used,
            "iterations": self.iterations,
            "cost": self.cost,
            "error": self.error,
            "error_code": self.error_code,
            "status": self.status.value,
        }
