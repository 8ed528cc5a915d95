"""Tool registry: name-keyed tool set plus primitive dispatch.

Dispatch never raises for tool-level problems. Unknown tools and executor
exceptions come back as a failed ToolOutcome so the loop can feed them to
the model as ordinary tool results.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from arvalo.agent.types import Tool, ToolOutcome

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Holds the tools one agent may call."""

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        if tools:
            self.add_tools(tools)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_tool(self, tool: Tool) -> None:
        """Register a tool; an existing tool with the same name is replaced."""
        if tool.name in self._tools:
            logger.debug("Replacing tool %s", tool.name)
        self._tools[tool.name] = tool

    def add_tools(self, tools: Iterable[Tool]) -> None:
        for tool in tools:
            self.add_tool(tool)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_tool(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def get_tools(self) -> List[Tool]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def get_schemas(self) -> List[Dict[str, Any]]:
        """Model-facing tool schemas in registration order."""
        return [tool.to_schema() for tool in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute_tool(self, name: str, params: Optional[Dict[str, Any]]) -> ToolOutcome:
        """Run a tool and normalize its outcome."""
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("Tool %s not found", name)
            return ToolOutcome(success=False, error=f"Tool {name} not found")

        start = time.monotonic()
        logger.info("Executing tool %s (args %s)", name, args_hash(params or {}))
        try:
            data = await tool.executor(params or {})
        except Exception as exc:
            logger.error("Tool execution failed: %s: %s", name, exc, exc_info=True)
            return ToolOutcome(success=False, error=str(exc) or exc.__class__.__name__)

        logger.debug("Tool %s finished in %dms", name, int((time.monotonic() - start) * 1000))
        return ToolOutcome(success=True, data=data)


def args_hash(args: dict) -> str:
    """Deterministic hash of tool args, used to keep arguments out of logs."""
    raw = json.dumps(args, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode()).hexdigest()[:12]
