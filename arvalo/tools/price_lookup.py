"""Price lookup tool.

The scraping itself belongs to the price-tracking service; this tool only
adapts a PriceChecker to the agent tool contract.
"""

import logging
from typing import Any, Dict, Protocol

from arvalo.agent.errors import ToolExecutionError
from arvalo.agent.types import Tool

logger = logging.getLogger(__name__)


class PriceChecker(Protocol):
    async def check_price(self, url: str) -> Dict[str, Any]:
        """Return url, current_price, currency, available, title, image_url, timestamp."""
        ...


class UnconfiguredPriceChecker:
    """Placeholder used when no price-tracking service is wired in."""

    async def check_price(self, url: str) -> Dict[str, Any]:
        raise ToolExecutionError("No price checker is configured")


def price_lookup_tool(checker: PriceChecker) -> Tool:
    async def execute(params: Dict[str, Any]) -> Dict[str, Any]:
        product_url = params.get("product_url")
        if not product_url:
            raise ToolExecutionError("Failed to check price: product_url is required")

        try:
            result = await checker.check_price(product_url)
        except Exception as exc:
            logger.error("Price lookup failed for %s: %s", product_url, exc)
            raise ToolExecutionError(f"Failed to check price: {exc}") from exc

        return {
            "url": result.get("url", product_url),
            "current_price": result.get("current_price"),
            "currency": result.get("currency"),
            "available": result.get("available"),
            "title": result.get("title"),
            "image_url": result.get("image_url"),
            "checked_at": result.get("timestamp"),
        }

    return Tool(
        name="price_lookup",
        description=(
            "Check the current price of a product from a given URL. Use this to verify current prices, "
            "detect price drops, or compare prices. Returns price, availability, and product details."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "product_url": {"type": "string", "description": "The product URL to check the price for"},
            },
            "required": ["product_url"],
        },
        executor=execute,
    )
