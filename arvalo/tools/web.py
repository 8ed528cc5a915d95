"""Web search and web scrape tools."""

import logging
import re
from typing import Any, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from arvalo.agent.errors import ToolExecutionError
from arvalo.agent.types import Tool

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_URL = "https://api.duckduckgo.com/"
DEFAULT_TIMEOUT_S = 15.0
DEFAULT_MAX_LENGTH = 50_000
DEFAULT_NUM_RESULTS = 5

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

_WHITESPACE = re.compile(r"\s+")


def html_to_text(html: str) -> str:
    """Visible text of an HTML document with whitespace collapsed."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style", "noscript"]):
        element.decompose()
    return _WHITESPACE.sub(" ", soup.get_text(" ")).strip()


async def fetch_page(
    url: str,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    async with httpx.AsyncClient(
        timeout=timeout_s,
        headers=BROWSER_HEADERS,
        follow_redirects=True,
        transport=transport,
    ) as client:
        response = await client.get(url)
        response.raise_for_status()
        return response.text


async def search_duckduckgo(
    query: str,
    *,
    search_url: str = DEFAULT_SEARCH_URL,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Raw DuckDuckGo instant-answer payload for a query."""
    async with httpx.AsyncClient(timeout=timeout_s, transport=transport) as client:
        response = await client.get(search_url, params={"q": query, "format": "json", "no_html": 1})
        response.raise_for_status()
        return response.json()


def web_search_tool(
    *,
    search_url: str = DEFAULT_SEARCH_URL,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tool:
    async def execute(params: Dict[str, Any]) -> Dict[str, Any]:
        query = params.get("query")
        if not query:
            raise ToolExecutionError("Failed to search: query is required")
        num_results = int(params.get("num_results") or DEFAULT_NUM_RESULTS)

        try:
            data = await search_duckduckgo(query, search_url=search_url, timeout_s=timeout_s, transport=transport)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Web search failed: %s", exc)
            raise ToolExecutionError(f"Failed to search: {exc}") from exc

        results: List[Dict[str, Any]] = []
        if data.get("AbstractText"):
            results.append({
                "title": data.get("Heading") or "Instant Answer",
                "url": data.get("AbstractURL"),
                "snippet": data["AbstractText"],
            })
        for topic in data.get("RelatedTopics") or []:
            if len(results) >= num_results:
                break
            text = topic.get("Text")
            first_url = topic.get("FirstURL")
            if text and first_url:
                results.append({
                    "title": text.split(" - ")[0],
                    "url": first_url,
                    "snippet": text,
                })

        return {
            "query": query,
            "results": results[:num_results],
            "total_results": len(results),
        }

    return Tool(
        name="web_search",
        description=(
            "Search the internet for information. Use this to find current information, product prices, "
            "store policies, or any other web-based data. Returns search results with titles, URLs, and snippets."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query to execute"},
                "num_results": {"type": "number", "description": "Number of results to return (default: 5)"},
            },
            "required": ["query"],
        },
        executor=execute,
    )


def web_scrape_tool(
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    default_max_length: int = DEFAULT_MAX_LENGTH,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tool:
    async def execute(params: Dict[str, Any]) -> Dict[str, Any]:
        url = params.get("url")
        if not url:
            raise ToolExecutionError("Failed to scrape URL: url is required")
        max_length = int(params.get("max_length") or default_max_length)

        try:
            html = await fetch_page(url, timeout_s=timeout_s, transport=transport)
        except httpx.HTTPStatusError as exc:
            raise ToolExecutionError(
                f"Failed to scrape URL: {exc.response.status_code} {exc.response.reason_phrase}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Web scraping failed for %s: %s", url, exc)
            raise ToolExecutionError(f"Failed to scrape URL: {exc}") from exc

        if params.get("extract_type") == "html":
            content, content_type = html, "html"
        else:
            content, content_type = html_to_text(html), "text"

        return {
            "url": url,
            "content": content[:max_length],
            "content_type": content_type,
            "truncated": len(content) > max_length,
        }

    return Tool(
        name="web_scrape",
        description=(
            "Fetch and extract content from a specific URL. Use this to read web pages, extract text, "
            "or get HTML content from websites. Returns the page content."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "The URL to scrape"},
                "extract_type": {
                    "type": "string",
                    "enum": ["text", "html"],
                    "description": 'What to extract: "text" for clean text content, "html" for raw HTML (default: text)',
                },
                "max_length": {
                    "type": "number",
                    "description": "Maximum content length to return in characters (default: 50000)",
                },
            },
            "required": ["url"],
        },
        executor=execute,
    )
