"""Built-in agent tools.

Each tool is built by a factory that takes its collaborators (HTTP
settings, datastore, price checker), so nothing here holds global state.
build_toolkit() wires the full set from application settings.
"""

from typing import Dict, Optional

import httpx

from arvalo.agent.types import Tool
from arvalo.tools.database import (
    InMemoryPurchaseStore,
    PurchaseStore,
    database_query_tool,
    database_update_tool,
)
from arvalo.tools.price_lookup import PriceChecker, UnconfiguredPriceChecker, price_lookup_tool
from arvalo.tools.warranty_lookup import warranty_lookup_tool
from arvalo.tools.web import web_scrape_tool, web_search_tool


def build_toolkit(
    store: PurchaseStore,
    price_checker: Optional[PriceChecker] = None,
    *,
    search_url: str = "https://api.duckduckgo.com/",
    http_timeout_s: float = 15.0,
    scrape_max_length: int = 50_000,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Tool]:
    """Every built-in tool keyed by name."""
    tools = [
        web_search_tool(search_url=search_url, timeout_s=http_timeout_s, transport=transport),
        web_scrape_tool(timeout_s=http_timeout_s, default_max_length=scrape_max_length, transport=transport),
        price_lookup_tool(price_checker or UnconfiguredPriceChecker()),
        warranty_lookup_tool(search_url=search_url, timeout_s=http_timeout_s, transport=transport),
        database_query_tool(store),
        database_update_tool(store),
    ]
    return {tool.name: tool for tool in tools}


__all__ = [
    "InMemoryPurchaseStore",
    "PriceChecker",
    "PurchaseStore",
    "UnconfiguredPriceChecker",
    "build_toolkit",
    "database_query_tool",
    "database_update_tool",
    "price_lookup_tool",
    "warranty_lookup_tool",
    "web_scrape_tool",
    "web_search_tool",
]
