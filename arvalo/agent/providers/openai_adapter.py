"""OpenAI provider adapter.

Maps OpenAI chat-completion tool_calls responses to the agent's content
blocks, and tool results back into `role: tool` messages.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from arvalo.agent.providers.base import LLMAdapter, detect_media_type, provider_error
from arvalo.agent.types import (
    AgentMessage,
    Completion,
    CompletionRequest,
    TextBlock,
    ToolCallBlock,
    ToolResultBlock,
    Usage,
)

logger = logging.getLogger(__name__)

VISION_MODEL = "gpt-4o"

# finish_reason -> the stop reasons the loop understands
_STOP_REASONS = {
    "stop": "end_turn",
    "tool_calls": "tool_use",
    "length": "max_tokens",
}


class OpenAIAdapter(LLMAdapter):
    """Adapter for OpenAI chat completions with function calling."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
        **kwargs,
    ):
        if client is not None:
            self.client = client
        else:
            client_kwargs: Dict[str, Any] = {}
            if api_key:
                client_kwargs["api_key"] = api_key
            if base_url:
                client_kwargs["base_url"] = base_url
            self.client = AsyncOpenAI(**client_kwargs)

    # ------------------------------------------------------------------
    # complete
    # ------------------------------------------------------------------

    async def complete(self, request: CompletionRequest) -> Completion:
        """Call OpenAI and normalize the response."""
        kwargs: Dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": convert_messages(request.system_prompt, request.messages),
        }
        if request.tools:
            kwargs["tools"] = convert_tools(request.tools)

        response = await self._create(**kwargs)
        choice = response.choices[0]
        msg = choice.message

        content: List[Any] = []
        if msg.content:
            content.append(TextBlock(msg.content))
        for tc in msg.tool_calls or []:
            try:
                args = json.loads(tc.function.arguments) if tc.function.arguments else {}
            except json.JSONDecodeError:
                args = {"_raw": tc.function.arguments}
            content.append(ToolCallBlock(id=tc.id, name=tc.function.name, input=args))

        usage = Usage()
        if response.usage is not None:
            usage = Usage(
                input_tokens=response.usage.prompt_tokens or 0,
                output_tokens=response.usage.completion_tokens or 0,
            )
        stop_reason = _STOP_REASONS.get(choice.finish_reason, choice.finish_reason)
        return Completion(content=content, usage=usage, stop_reason=stop_reason)

    # ------------------------------------------------------------------
    # vision
    # ------------------------------------------------------------------

    async def vision(
        self,
        image_bytes: bytes,
        prompt: str,
        *,
        media_type: Optional[str] = None,
    ) -> str:
        """Send an image to GPT-4o vision and get text back."""
        b64 = base64.b64encode(image_bytes).decode("ascii")
        data_url = f"data:{media_type or detect_media_type(image_bytes)};base64,{b64}"
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": data_url, "detail": "high"}},
                ],
            }
        ]

        response = await self._create(model=VISION_MODEL, messages=messages, max_tokens=4096)
        return response.choices[0].message.content or ""

    async def _create(self, **kwargs):
        try:
            return await self.client.chat.completions.create(**kwargs)
        except openai.APIConnectionError as exc:
            raise provider_error(exc, connection=True) from exc
        except openai.APIStatusError as exc:
            raise provider_error(exc, status_code=exc.status_code) from exc


# ---------------------------------------------------------------------------
# Message / tool schema conversion
# ---------------------------------------------------------------------------

def convert_messages(system_prompt: str, messages: List[AgentMessage]) -> List[Dict[str, Any]]:
    """Convert agent messages to OpenAI chat messages."""
    oai_msgs: List[Dict[str, Any]] = []
    if system_prompt:
        oai_msgs.append({"role": "system", "content": system_prompt})

    for msg in messages:
        if isinstance(msg.content, str):
            oai_msgs.append({"role": msg.role, "content": msg.content})
            continue

        texts = [b.text for b in msg.content if isinstance(b, TextBlock)]
        calls = [b for b in msg.content if isinstance(b, ToolCallBlock)]
        results = [b for b in msg.content if isinstance(b, ToolResultBlock)]

        if msg.role == "assistant":
            entry: Dict[str, Any] = {"role": "assistant", "content": "\n".join(texts) or None}
            if calls:
                entry["tool_calls"] = [
                    {
                        "id": c.id,
                        "type": "function",
                        "function": {"name": c.name, "arguments": json.dumps(c.input)},
                    }
                    for c in calls
                ]
            oai_msgs.append(entry)
            continue

        # Tool results travel as one `tool` message per call
        for r in results:
            oai_msgs.append({"role": "tool", "tool_call_id": r.tool_call_id, "content": r.content})
        if texts:
            oai_msgs.append({"role": "user", "content": "\n".join(texts)})

    return oai_msgs


def convert_tools(tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert tool schemas to OpenAI function-calling format."""
    return [
        {
            "type": "function",
            "function": {
                "name": t.get("name", ""),
                "description": t.get("description", ""),
                "parameters": t.get("input_schema", {"type": "object", "properties": {}}),
            },
        }
        for t in tools
    ]
