"""Final-answer extraction and optional schema validation."""

from __future__ import annotations

import json
import re
from typing import Any, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from arvalo.agent.errors import MalformedAnswerError
from arvalo.agent.types import AgentMessage, TextBlock

_FENCED_JSON = re.compile(r"^```(?:json)?\s*\n(?P<body>.*)\n\s*```$", re.DOTALL)


def extract_final_answer(messages: List[AgentMessage]) -> Any:
    """Return the newest assistant text, parsed as JSON when possible.

    Scans newest-first for an assistant message with a text block and takes
    its first text block. Returns the raw text when it is not JSON, or None
    when the assistant never produced text.
    """
    for message in reversed(messages):
        if message.role != "assistant":
            continue
        for block in message.blocks():
            if isinstance(block, TextBlock):
                return parse_answer_text(block.text)
    return None


def parse_answer_text(text: str) -> Any:
    candidate = text.strip()
    match = _FENCED_JSON.match(candidate)
    if match:
        candidate = match.group("body").strip()
    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return text


def validate_answer(answer: Any, model: Optional[Type[BaseModel]]) -> Any:
    """Check an extracted answer against an answer model.

    Returns the validated answer as JSON-shaped data; raises
    MalformedAnswerError when the answer is not an object or does not fit.
    """
    if model is None:
        return answer
    if not isinstance(answer, dict):
        raise MalformedAnswerError(
            f"Expected a JSON object matching {model.__name__}, got {type(answer).__name__}"
        )
    try:
        return model.model_validate(answer).model_dump(mode="json")
    except PydanticValidationError as exc:
        raise MalformedAnswerError(
            f"Answer does not match {model.__name__}: {exc.error_count()} validation error(s)"
        ) from exc
