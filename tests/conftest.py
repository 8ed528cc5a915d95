"""Shared fixtures for the agent test suite."""

from typing import Any, Dict

import pytest

from arvalo.agent.types import AgentConfig, RetryPolicy, Tool
from arvalo.tools.database import InMemoryPurchaseStore


@pytest.fixture
def echo_tool() -> Tool:
    """Tool that returns its params unchanged."""

    async def execute(params: Dict[str, Any]) -> Dict[str, Any]:
        return dict(params)

    return Tool(
        name="echo",
        description="Echo the given parameters back",
        input_schema={"type": "object", "properties": {"x": {"type": "number"}}},
        executor=execute,
    )


@pytest.fixture
def failing_tool() -> Tool:
    async def execute(params: Dict[str, Any]) -> Dict[str, Any]:
        raise RuntimeError("boom")

    return Tool(
        name="explode",
        description="Always fails",
        input_schema={"type": "object", "properties": {}},
        executor=execute,
    )


@pytest.fixture
def agent_config() -> AgentConfig:
    return AgentConfig(
        name="test_agent",
        description="Agent under test",
        system_prompt="You are a test agent.",
        max_iterations=5,
    )


@pytest.fixture
def no_retry() -> RetryPolicy:
    return RetryPolicy(max_retries=0, base_delay_s=0.0, max_delay_s=0.0, timeout_s=None)


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_retries=2, base_delay_s=0.0, max_delay_s=0.0, timeout_s=None)


@pytest.fixture
def purchase_store() -> InMemoryPurchaseStore:
    return InMemoryPurchaseStore({
        "purchases": [
            {"id": "p1", "user_id": "u1", "merchant": "Amazon", "total_amount": 99.99, "purchase_date": "2025-01-10"},
            {"id": "p2", "user_id": "u1", "merchant": "Target", "total_amount": 25.00, "purchase_date": "2025-02-01"},
            {"id": "p3", "user_id": "u2", "merchant": "Amazon", "total_amount": 10.00, "purchase_date": "2025-01-20"},
            {"id": "p4", "user_id": "u1", "merchant": "Best Buy", "total_amount": 450.00, "purchase_date": None},
        ],
        "return_policies": [
            {"id": "r1", "merchant_name": "Amazon", "return_days": 30},
        ],
    })
