"""Warranty lookup tool: search for the manufacturer's warranty page and read its terms."""

import logging
import re
from typing import Any, Dict, Optional, Tuple

import httpx

from arvalo.agent.errors import ToolExecutionError
from arvalo.agent.types import Tool
from arvalo.tools.web import DEFAULT_SEARCH_URL, DEFAULT_TIMEOUT_S, fetch_page, html_to_text, search_duckduckgo

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 500

DURATION_PATTERNS = [
    re.compile(r"(\d+)[-\s]?year\s+(?:limited\s+)?warranty", re.IGNORECASE),
    re.compile(r"(\d+)[-\s]?month\s+(?:limited\s+)?warranty", re.IGNORECASE),
    re.compile(r"warranty\s+(?:period|duration)[:\s]+(\d+)\s+(year|month)", re.IGNORECASE),
]

# Industry-standard estimates used when no warranty page could be read.
DEFAULT_WARRANTIES: Dict[str, Tuple[int, str]] = {
    "electronics": (1, "years"),
    "appliances": (1, "years"),
    "furniture": (1, "years"),
    "clothing": (90, "days"),
    "toys": (90, "days"),
}


def find_warranty_url(search_data: Dict[str, Any]) -> Optional[str]:
    if search_data.get("AbstractURL"):
        return search_data["AbstractURL"]
    for topic in search_data.get("RelatedTopics") or []:
        first_url = topic.get("FirstURL")
        if not first_url:
            continue
        if "warranty" in (topic.get("Text") or "").lower() or "warranty" in first_url.lower():
            return first_url
    return None


def parse_duration(text: str) -> Tuple[Optional[int], Optional[str]]:
    """First warranty duration mentioned in text, as (amount, "years"|"months")."""
    for pattern in DURATION_PATTERNS:
        match = pattern.search(text)
        if match:
            unit = "years" if "year" in match.group(0).lower() else "months"
            return int(match.group(1)), unit
    return None, None


def default_warranty(category: Optional[str]) -> Tuple[int, str]:
    return DEFAULT_WARRANTIES.get((category or "electronics").lower(), DEFAULT_WARRANTIES["electronics"])


def warranty_lookup_tool(
    *,
    search_url: str = DEFAULT_SEARCH_URL,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tool:
    async def execute(params: Dict[str, Any]) -> Dict[str, Any]:
        product = params.get("product_name")
        manufacturer = params.get("manufacturer")
        if not product or not manufacturer:
            raise ToolExecutionError("Failed to lookup warranty: product_name and manufacturer are required")

        query = f"{manufacturer} {product} warranty information terms"
        try:
            search_data = await search_duckduckgo(
                query, search_url=search_url, timeout_s=timeout_s, transport=transport
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Warranty search failed: %s", exc)
            raise ToolExecutionError(f"Failed to lookup warranty: {exc}") from exc

        warranty_url = find_warranty_url(search_data)
        if warranty_url:
            try:
                text = html_to_text(await fetch_page(warranty_url, timeout_s=timeout_s, transport=transport))
            except httpx.HTTPError as exc:
                logger.info("Could not read warranty page %s: %s", warranty_url, exc)
            else:
                duration, unit = parse_duration(text)
                return {
                    "product": product,
                    "manufacturer": manufacturer,
                    "warranty_found": True,
                    "warranty_duration": duration,
                    "warranty_unit": unit,
                    "warranty_url": warranty_url,
                    "warranty_excerpt": text[:EXCERPT_LENGTH],
                    "coverage_type": "limited" if "limited" in text.lower() else "full",
                }

        duration, unit = default_warranty(params.get("product_category"))
        return {
            "product": product,
            "manufacturer": manufacturer,
            "warranty_found": False,
            "warranty_duration": duration,
            "warranty_unit": unit,
            "warranty_url": warranty_url,
            "warranty_excerpt": "Standard manufacturer warranty (estimated)",
            "coverage_type": "limited",
            "note": "Could not find specific warranty information. Using industry standard estimate.",
        }

    return Tool(
        name="warranty_lookup",
        description=(
            "Look up warranty information for a product by searching manufacturer websites. Returns warranty "
            "duration, terms, coverage details, and claim process. Use this when you need to find warranty "
            "details for a specific product or brand."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "product_name": {"type": "string", "description": "The product name or model number"},
                "manufacturer": {"type": "string", "description": "The manufacturer/brand name"},
                "product_category": {
                    "type": "string",
                    "description": "Product category (e.g., electronics, appliances, furniture)",
                },
            },
            "required": ["product_name", "manufacturer"],
        },
        executor=execute,
    )
