"""Tests for the built-in tools: web search/scrape, warranty lookup, price lookup, datastore."""

import httpx
import pytest

from arvalo.agent.errors import ToolExecutionError
from arvalo.tools import build_toolkit
from arvalo.tools.database import InMemoryPurchaseStore, database_query_tool, database_update_tool
from arvalo.tools.price_lookup import UnconfiguredPriceChecker, price_lookup_tool
from arvalo.tools.warranty_lookup import default_warranty, find_warranty_url, parse_duration, warranty_lookup_tool
from arvalo.tools.web import html_to_text, web_scrape_tool, web_search_tool

SEARCH_PAYLOAD = {
    "Heading": "Sony WH-1000XM5",
    "AbstractText": "Wireless noise cancelling headphones.",
    "AbstractURL": "https://en.wikipedia.org/wiki/Sony_WH-1000XM5",
    "RelatedTopics": [
        {"Text": "Sony - Japanese electronics company", "FirstURL": "https://duckduckgo.com/Sony"},
        {"Name": "Category group without text"},
        {"Text": "Noise cancelling - Active noise control", "FirstURL": "https://duckduckgo.com/ANC"},
        {"Text": "Bluetooth - Wireless standard", "FirstURL": "https://duckduckgo.com/Bluetooth"},
    ],
}

POLICY_HTML = """
<html><head><title>Warranty</title><style>body { color: red; }</style></head>
<body>
  <script>trackVisitor();</script>
  <h1>Sony Warranty</h1>
  <p>This product is covered by a 2-year   limited warranty
     against manufacturing defects.</p>
</body></html>
"""


def _transport(routes):
    """MockTransport answering by host; a route is a Response or a callable(request)."""
    seen = []

    def handler(request):
        seen.append(request)
        route = routes.get(request.url.host)
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request) if callable(route) else route

    transport = httpx.MockTransport(handler)
    transport.seen = seen
    return transport


class TestHtmlToText:
    def test_strips_scripts_and_collapses_whitespace(self):
        text = html_to_text(POLICY_HTML)
        assert "trackVisitor" not in text
        assert "color: red" not in text
        assert "This product is covered by a 2-year limited warranty against manufacturing defects." in text


class TestWebSearch:
    @pytest.mark.asyncio
    async def test_results_from_instant_answer(self):
        transport = _transport({"api.duckduckgo.com": httpx.Response(200, json=SEARCH_PAYLOAD)})
        tool = web_search_tool(transport=transport)

        data = await tool.executor({"query": "sony headphones", "num_results": 3})

        assert data["query"] == "sony headphones"
        assert data["results"][0] == {
            "title": "Sony WH-1000XM5",
            "url": "https://en.wikipedia.org/wiki/Sony_WH-1000XM5",
            "snippet": "Wireless noise cancelling headphones.",
        }
        assert [r["title"] for r in data["results"]] == ["Sony WH-1000XM5", "Sony", "Noise cancelling"]
        assert data["total_results"] == 3

        params = transport.seen[0].url.params
        assert params["q"] == "sony headphones"
        assert params["format"] == "json"
        assert params["no_html"] == "1"

    @pytest.mark.asyncio
    async def test_custom_search_url(self):
        transport = _transport({"search.internal": httpx.Response(200, json={"RelatedTopics": []})})
        tool = web_search_tool(search_url="https://search.internal/ddg", transport=transport)

        data = await tool.executor({"query": "x"})

        assert data == {"query": "x", "results": [], "total_results": 0}

    @pytest.mark.asyncio
    async def test_http_error(self):
        transport = _transport({"api.duckduckgo.com": httpx.Response(503, text="busy")})
        tool = web_search_tool(transport=transport)

        with pytest.raises(ToolExecutionError, match="Failed to search"):
            await tool.executor({"query": "x"})

    @pytest.mark.asyncio
    async def test_query_required(self):
        with pytest.raises(ToolExecutionError, match="query is required"):
            await web_search_tool().executor({})


class TestWebScrape:
    @pytest.mark.asyncio
    async def test_text_extraction(self):
        transport = _transport({"www.sony.com": httpx.Response(200, text=POLICY_HTML)})
        tool = web_scrape_tool(transport=transport)

        data = await tool.executor({"url": "https://www.sony.com/warranty"})

        assert data["url"] == "https://www.sony.com/warranty"
        assert data["content_type"] == "text"
        assert "2-year limited warranty" in data["content"]
        assert data["truncated"] is False
        assert transport.seen[0].headers["User-Agent"].startswith("Mozilla/5.0")

    @pytest.mark.asyncio
    async def test_raw_html_and_truncation(self):
        transport = _transport({"www.sony.com": httpx.Response(200, text=POLICY_HTML)})
        tool = web_scrape_tool(transport=transport)

        data = await tool.executor({"url": "https://www.sony.com/warranty", "extract_type": "html", "max_length": 20})

        assert data["content_type"] == "html"
        assert data["content"] == POLICY_HTML[:20]
        assert data["truncated"] is True

    @pytest.mark.asyncio
    async def test_status_error(self):
        tool = web_scrape_tool(transport=_transport({}))

        with pytest.raises(ToolExecutionError, match="Failed to scrape URL: 404 Not Found"):
            await tool.executor({"url": "https://missing.example/page"})

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        tool = web_scrape_tool(transport=_transport({"down.example": refuse}))

        with pytest.raises(ToolExecutionError, match="connection refused"):
            await tool.executor({"url": "https://down.example/"})


class TestWarrantyHelpers:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Covered by a 2-year limited warranty.", (2, "years")),
            ("Includes a 1 year warranty", (1, "years")),
            ("Backed by our 18-month warranty", (18, "months")),
            ("Warranty period: 24 months from purchase", (24, "months")),
            ("No coverage information here", (None, None)),
        ],
    )
    def test_parse_duration(self, text, expected):
        assert parse_duration(text) == expected

    def test_find_warranty_url_prefers_abstract(self):
        assert find_warranty_url(SEARCH_PAYLOAD) == "https://en.wikipedia.org/wiki/Sony_WH-1000XM5"

    def test_find_warranty_url_from_topics(self):
        data = {"RelatedTopics": [
            {"Text": "Sony store", "FirstURL": "https://sony.com/store"},
            {"Text": "Sony support", "FirstURL": "https://sony.com/warranty-terms"},
        ]}
        assert find_warranty_url(data) == "https://sony.com/warranty-terms"
        assert find_warranty_url({"RelatedTopics": []}) is None

    def test_default_warranty(self):
        assert default_warranty("Clothing") == (90, "days")
        assert default_warranty(None) == (1, "years")
        assert default_warranty("garden") == (1, "years")


class TestWarrantyLookup:
    @pytest.mark.asyncio
    async def test_found_on_manufacturer_page(self):
        transport = _transport({
            "api.duckduckgo.com": httpx.Response(200, json={"AbstractURL": "https://www.sony.com/warranty"}),
            "www.sony.com": httpx.Response(200, text=POLICY_HTML),
        })
        tool = warranty_lookup_tool(transport=transport)

        data = await tool.executor({"product_name": "WH-1000XM5", "manufacturer": "Sony"})

        assert data["warranty_found"] is True
        assert (data["warranty_duration"], data["warranty_unit"]) == (2, "years")
        assert data["warranty_url"] == "https://www.sony.com/warranty"
        assert data["coverage_type"] == "limited"
        assert len(data["warranty_excerpt"]) <= 500
        assert transport.seen[0].url.params["q"] == "Sony WH-1000XM5 warranty information terms"

    @pytest.mark.asyncio
    async def test_falls_back_to_category_estimate(self):
        transport = _transport({"api.duckduckgo.com": httpx.Response(200, json={"RelatedTopics": []})})
        tool = warranty_lookup_tool(transport=transport)

        data = await tool.executor({"product_name": "Lego set", "manufacturer": "Lego", "product_category": "toys"})

        assert data["warranty_found"] is False
        assert (data["warranty_duration"], data["warranty_unit"]) == (90, "days")
        assert data["warranty_excerpt"] == "Standard manufacturer warranty (estimated)"
        assert "industry standard estimate" in data["note"]

    @pytest.mark.asyncio
    async def test_unreadable_page_falls_back(self):
        transport = _transport({
            "api.duckduckgo.com": httpx.Response(200, json={"AbstractURL": "https://gone.example/warranty"}),
        })
        tool = warranty_lookup_tool(transport=transport)

        data = await tool.executor({"product_name": "Toaster", "manufacturer": "Acme"})

        assert data["warranty_found"] is False
        assert data["warranty_url"] == "https://gone.example/warranty"
        assert (data["warranty_duration"], data["warranty_unit"]) == (1, "years")

    @pytest.mark.asyncio
    async def test_requires_product_and_manufacturer(self):
        with pytest.raises(ToolExecutionError, match="product_name and manufacturer are required"):
            await warranty_lookup_tool().executor({"product_name": "Toaster"})


class _StubChecker:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.urls = []

    async def check_price(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.result


class TestPriceLookup:
    @pytest.mark.asyncio
    async def test_reshapes_checker_result(self):
        checker = _StubChecker({
            "url": "https://shop.example/p/1",
            "current_price": 79.99,
            "currency": "USD",
            "available": True,
            "title": "Headphones",
            "image_url": None,
            "timestamp": "2025-02-01T00:00:00Z",
        })

        data = await price_lookup_tool(checker).executor({"product_url": "https://shop.example/p/1"})

        assert checker.urls == ["https://shop.example/p/1"]
        assert data["current_price"] == 79.99
        assert data["checked_at"] == "2025-02-01T00:00:00Z"
        assert "timestamp" not in data

    @pytest.mark.asyncio
    async def test_checker_failure(self):
        checker = _StubChecker(error=RuntimeError("blocked by captcha"))
        with pytest.raises(ToolExecutionError, match="Failed to check price: blocked by captcha"):
            await price_lookup_tool(checker).executor({"product_url": "https://shop.example/p/1"})

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        with pytest.raises(ToolExecutionError, match="No price checker is configured"):
            await price_lookup_tool(UnconfiguredPriceChecker()).executor({"product_url": "https://x.example"})

    @pytest.mark.asyncio
    async def test_url_required(self):
        with pytest.raises(ToolExecutionError, match="product_url is required"):
            await price_lookup_tool(_StubChecker()).executor({})


class TestDatabaseQuery:
    @pytest.mark.asyncio
    async def test_equality_filters(self, purchase_store):
        data = await database_query_tool(purchase_store).executor({
            "table": "purchases",
            "filters": {"user_id": "u1", "merchant": "Amazon"},
        })
        assert data["count"] == 1
        assert data["rows"][0]["id"] == "p1"

    @pytest.mark.asyncio
    async def test_order_desc_with_nulls_last(self, purchase_store):
        data = await database_query_tool(purchase_store).executor({
            "table": "purchases",
            "filters": {"user_id": "u1"},
            "order_by": "purchase_date",
        })
        assert [r["id"] for r in data["rows"]] == ["p2", "p1", "p4"]

    @pytest.mark.asyncio
    async def test_order_asc_and_limit(self, purchase_store):
        data = await database_query_tool(purchase_store).executor({
            "table": "purchases",
            "order_by": "total_amount",
            "order_direction": "asc",
            "limit": 2,
        })
        assert [r["id"] for r in data["rows"]] == ["p3", "p2"]

    @pytest.mark.asyncio
    async def test_limit_is_capped(self):
        store = InMemoryPurchaseStore({"notifications": [{"id": str(i)} for i in range(150)]})
        data = await database_query_tool(store).executor({"table": "notifications", "limit": 500})
        assert data["count"] == 100

    @pytest.mark.asyncio
    async def test_default_limit(self):
        store = InMemoryPurchaseStore({"notifications": [{"id": str(i)} for i in range(15)]})
        data = await database_query_tool(store).executor({"table": "notifications"})
        assert data["count"] == 10

    @pytest.mark.asyncio
    async def test_unknown_table(self, purchase_store):
        with pytest.raises(ToolExecutionError, match="unknown table 'users'"):
            await database_query_tool(purchase_store).executor({"table": "users"})

    @pytest.mark.asyncio
    async def test_rows_are_copies(self, purchase_store):
        data = await database_query_tool(purchase_store).executor({"table": "return_policies"})
        data["rows"][0]["return_days"] = 0
        again = await database_query_tool(purchase_store).executor({"table": "return_policies"})
        assert again["rows"][0]["return_days"] == 30


class TestDatabaseUpdate:
    @pytest.mark.asyncio
    async def test_update_record(self, purchase_store):
        data = await database_update_tool(purchase_store).executor({
            "table": "purchases",
            "id": "p1",
            "updates": {"status": "returned"},
        })
        assert data["success"] is True
        assert data["updated_record"]["status"] == "returned"

        rows = await purchase_store.query("purchases", filters={"status": "returned"})
        assert [r["id"] for r in rows] == ["p1"]

    @pytest.mark.asyncio
    async def test_missing_record(self, purchase_store):
        with pytest.raises(ToolExecutionError, match="no purchases record with id nope"):
            await database_update_tool(purchase_store).executor({
                "table": "purchases", "id": "nope", "updates": {"status": "x"},
            })

    @pytest.mark.asyncio
    async def test_policies_are_read_only(self, purchase_store):
        with pytest.raises(ToolExecutionError, match="unknown table"):
            await database_update_tool(purchase_store).executor({
                "table": "return_policies", "id": "r1", "updates": {"return_days": 90},
            })

    @pytest.mark.asyncio
    async def test_requires_id_and_updates(self, purchase_store):
        with pytest.raises(ToolExecutionError, match="id and updates are required"):
            await database_update_tool(purchase_store).executor({"table": "purchases", "id": "p1"})


class TestBuildToolkit:
    def test_all_tools(self, purchase_store):
        toolkit = build_toolkit(purchase_store)
        assert sorted(toolkit) == [
            "database_query",
            "database_update",
            "price_lookup",
            "warranty_lookup",
            "web_scrape",
            "web_search",
        ]
        for name, tool in toolkit.items():
            assert tool.name == name
            assert tool.input_schema["type"] == "object"
