"""Shared construction for the specialized agents."""

import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple, Type

from pydantic import BaseModel

from arvalo.agent.engine import BaseAgent
from arvalo.agent.providers.base import LLMAdapter
from arvalo.agent.types import AgentConfig, AgentInput, AgentResult, Tool

logger = logging.getLogger(__name__)


class SpecializedAgent(BaseAgent):
    """BaseAgent with a fixed identity, system prompt and tool subset.

    Subclasses declare the class attributes below and add entry points
    that build an AgentInput and call execute().
    """

    agent_name: str = ""
    description: str = ""
    system_prompt: str = ""
    tool_names: Tuple[str, ...] = ()
    max_iterations: int = 10
    temperature: float = 0.5

    def __init__(
        self,
        provider: LLMAdapter,
        toolkit: Optional[Mapping[str, Tool]] = None,
        *,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        **kwargs: Any,
    ):
        config_kwargs: Dict[str, Any] = dict(
            name=self.agent_name,
            description=self.description,
            system_prompt=self.system_prompt,
            max_iterations=self.max_iterations,
            temperature=self.temperature,
            max_tokens=max_tokens,
        )
        if model:
            config_kwargs["model"] = model
        super().__init__(AgentConfig(**config_kwargs), provider, tools=self._select_tools(toolkit), **kwargs)

    def _select_tools(self, toolkit: Optional[Mapping[str, Tool]]) -> list:
        if toolkit is None:
            return []
        missing = [name for name in self.tool_names if name not in toolkit]
        if missing:
            logger.warning("[%s] Toolkit is missing tools: %s", self.agent_name, ", ".join(missing))
        return [toolkit[name] for name in self.tool_names if name in toolkit]

    async def run(
        self,
        prompt: str,
        context: Dict[str, Any],
        *,
        user_id: Optional[str] = None,
        answer_model: Optional[Type[BaseModel]] = None,
    ) -> AgentResult:
        return await self.execute(
            AgentInput(prompt=prompt, context=context, user_id=user_id),
            answer_model=answer_model,
        )


def today_iso() -> str:
    return date.today().isoformat()
