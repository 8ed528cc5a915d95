"""Typed error hierarchy for the agent core.

Every error carries a machine-readable `code` so callers can branch on
AgentResult.error_code without parsing messages. None of these escape
BaseAgent.execute() or the Orchestrator's public methods; they are raised
internally and converted into result objects at the top of each call.
"""

from __future__ import annotations

from typing import Optional


class AgentError(Exception):
    """Base for all agent errors."""
    code: str = "agent_error"
    retriable: bool = False

    def __init__(self, message: str, *, code: Optional[str] = None, retriable: Optional[bool] = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        if retriable is not None:
            self.retriable = retriable


class ValidationError(AgentError):
    """Request or argument validation failed."""
    code = "validation_error"
    retriable = False


class ToolUnavailableError(AgentError):
    """Requested tool does not exist in the registry."""
    code = "tool_unavailable"
    retriable = False


class ToolExecutionError(AgentError):
    """A tool executor failed."""
    code = "execution_error"
    retriable = False


class ProviderError(AgentError):
    """The model provider returned an error or was unreachable."""
    code = "provider_error"
    retriable = True


class AgentTimeoutError(AgentError):
    """A model call or a whole execute() exceeded its deadline."""
    code = "timeout"
    retriable = True


class MalformedAnswerError(AgentError):
    """The final answer did not match the entry point's answer model."""
    code = "malformed_answer"
    retriable = False


class AgentNotFoundError(AgentError):
    """The orchestrator has no agent registered under the requested key."""
    code = "agent_not_found"
    retriable = False


class WorkflowStepError(AgentError):
    """A workflow step returned an unsuccessful result."""
    code = "workflow_step_failed"
    retriable = False
