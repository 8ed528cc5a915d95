"""LLM provider adapters for the agent engine.

Usage:
    from arvalo.agent.providers import create_provider, create_provider_from_config

    # By name
    provider = create_provider("anthropic", api_key="sk-ant-...")

    # From app config
    provider = create_provider_from_config()
"""

from arvalo.agent.providers.base import (
    LLMAdapter,
    create_provider,
    create_provider_from_config,
)

__all__ = [
    "LLMAdapter",
    "create_provider",
    "create_provider_from_config",
]
