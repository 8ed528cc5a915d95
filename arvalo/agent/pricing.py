"""Cost estimation for agent runs.

These are rough estimates for dashboards, not billing figures. The default
charges every token at one blended rate; rate_card_pricing() prices input
and output tokens separately when the model's rate card is known.
"""

from __future__ import annotations

from arvalo.agent.types import PricingFn

DEFAULT_COST_PER_TOKEN = 0.000009


def blended_pricing(cost_per_token: float = DEFAULT_COST_PER_TOKEN) -> PricingFn:
    def price(input_tokens: int, output_tokens: int) -> float:
        return (input_tokens + output_tokens) * cost_per_token

    return price


def rate_card_pricing(input_per_mtok: float, output_per_mtok: float) -> PricingFn:
    """Price input/output tokens at USD-per-million-token rates."""
    def price(input_tokens: int, output_tokens: int) -> float:
        return (input_tokens * input_per_mtok + output_tokens * output_per_mtok) / 1_000_000

    return price
