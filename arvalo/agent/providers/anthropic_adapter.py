"""Anthropic provider adapter.

Maps the Messages API tool_use / tool_result content blocks to and from the
agent's TextBlock / ToolCallBlock / ToolResultBlock primitives.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional

import anthropic
from anthropic import AsyncAnthropic

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

VISION_MODEL = "claude-3-haiku-20240307"
VISION_MAX_TOKENS = 4096


class AnthropicAdapter(LLMAdapter):
    """Adapter for Anthropic Messages API with tool use."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        vision_model: str = VISION_MODEL,
        client: Optional[AsyncAnthropic] = None,
        **kwargs,
    ):
        self.vision_model = vision_model
        if client is not None:
            self.client = client
        else:
            client_kwargs: Dict[str, Any] = {}
            if api_key:
                client_kwargs["api_key"] = api_key
            self.client = AsyncAnthropic(**client_kwargs)

    # ------------------------------------------------------------------
    # complete
    # ------------------------------------------------------------------

    async def complete(self, request: CompletionRequest) -> Completion:
        """Call Anthropic Messages API and normalize the response."""
        kwargs: Dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": convert_messages(request.messages),
        }
        if request.system_prompt:
            kwargs["system"] = request.system_prompt
        if request.tools:
            kwargs["tools"] = request.tools

        response = await self._create(**kwargs)

        content: List[Any] = []
        for block in response.content:
            if block.type == "text":
                content.append(TextBlock(block.text))
            elif block.type == "tool_use":
                content.append(ToolCallBlock(
                    id=block.id,
                    name=block.name,
                    input=block.input if isinstance(block.input, dict) else {},
                ))

        usage = Usage(
            input_tokens=getattr(response.usage, "input_tokens", 0) or 0,
            output_tokens=getattr(response.usage, "output_tokens", 0) or 0,
        )
        return Completion(content=content, usage=usage, stop_reason=response.stop_reason)

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
        """Send an image to Claude vision and get text back."""
        b64 = base64.b64encode(image_bytes).decode("ascii")
        messages = [
            {
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": media_type or detect_media_type(image_bytes),
                            "data": b64,
                        },
                    },
                    {"type": "text", "text": prompt},
                ],
            }
        ]

        response = await self._create(
            model=self.vision_model,
            max_tokens=VISION_MAX_TOKENS,
            messages=messages,
        )
        return "\n".join(block.text for block in response.content if block.type == "text")

    async def _create(self, **kwargs):
        try:
            return await self.client.messages.create(**kwargs)
        except anthropic.APIConnectionError as exc:
            raise provider_error(exc, connection=True) from exc
        except anthropic.APIStatusError as exc:
            raise provider_error(exc, status_code=exc.status_code) from exc


# ---------------------------------------------------------------------------
# Message conversion
# ---------------------------------------------------------------------------

def convert_messages(messages: List[AgentMessage]) -> List[Dict[str, Any]]:
    """Convert agent messages to Anthropic message params."""
    api_msgs: List[Dict[str, Any]] = []
    for msg in messages:
        if isinstance(msg.content, str):
            api_msgs.append({"role": msg.role, "content": msg.content})
            continue

        blocks: List[Dict[str, Any]] = []
        for block in msg.content:
            if isinstance(block, TextBlock):
                # the API rejects empty text blocks
                if block.text:
                    blocks.append({"type": "text", "text": block.text})
            elif isinstance(block, ToolCallBlock):
                blocks.append({
                    "type": "tool_use",
                    "id": block.id,
                    "name": block.name,
                    "input": block.input,
                })
            elif isinstance(block, ToolResultBlock):
                blocks.append({
                    "type": "tool_result",
                    "tool_use_id": block.tool_call_id,
                    "content": block.content,
                })
        api_msgs.append({"role": msg.role, "content": blocks})
    return api_msgs
