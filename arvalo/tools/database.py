"""Datastore query/update tools.

The agents never talk to a database directly. They go through a
PurchaseStore, supplied by the application (a hosted Postgres client in
production, InMemoryPurchaseStore in development and tests).
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Protocol

from arvalo.agent.errors import ToolExecutionError
from arvalo.agent.types import Tool

logger = logging.getLogger(__name__)

QUERY_TABLES = ["purchases", "return_policies", "gift_cards", "notifications", "warranties"]
UPDATE_TABLES = ["purchases", "gift_cards", "notifications", "warranties"]
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class PurchaseStore(Protocol):
    """What the database tools need from the datastore."""

    async def query(
        self,
        table: str,
        *,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = False,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Dict[str, Any]]:
        ...

    async def update(self, table: str, record_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...


class InMemoryPurchaseStore:
    """Dict-of-lists PurchaseStore. Equality filters only, like the hosted client usage."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(row)
        self.tables.setdefault(table, []).append(stored)
        return copy.deepcopy(stored)

    async def query(
        self,
        table: str,
        *,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = False,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Dict[str, Any]]:
        rows = [
            row for row in self.tables.get(table, [])
            if all(row.get(key) == value for key, value in (filters or {}).items())
        ]
        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=not ascending)
            rows = present + missing
        return copy.deepcopy(rows[:limit])

    async def update(self, table: str, record_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        for row in self.tables.get(table, []):
            if str(row.get("id")) == str(record_id):
                row.update(updates)
                return copy.deepcopy(row)
        return None


def database_query_tool(store: PurchaseStore) -> Tool:
    async def execute(params: Dict[str, Any]) -> Dict[str, Any]:
        table = params.get("table")
        if table not in QUERY_TABLES:
            raise ToolExecutionError(f"Failed to query database: unknown table {table!r}")
        limit = min(int(params.get("limit") or DEFAULT_LIMIT), MAX_LIMIT)

        try:
            rows = await store.query(
                table,
                filters=params.get("filters") or {},
                order_by=params.get("order_by"),
                ascending=params.get("order_direction") == "asc",
                limit=limit,
            )
        except Exception as exc:
            logger.error("Database query failed: %s", exc)
            raise ToolExecutionError(f"Failed to query database: {exc}") from exc

        return {"table": table, "rows": rows, "count": len(rows)}

    return Tool(
        name="database_query",
        description=(
            "Query the database for purchase history, return policies, gift cards, warranties, or other user data. "
            "Use this to look up existing purchases, check return deadlines, or analyze purchase patterns."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "table": {"type": "string", "enum": QUERY_TABLES, "description": "The table to query"},
                "filters": {
                    "type": "object",
                    "description": 'Filter conditions (e.g., {"merchant": "Amazon", "user_id": "123"})',
                },
                "order_by": {"type": "string", "description": 'Column to order by (e.g., "purchase_date")'},
                "order_direction": {
                    "type": "string",
                    "enum": ["asc", "desc"],
                    "description": "Sort direction (default: desc)",
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of rows to return (default: 10, max: 100)",
                },
            },
            "required": ["table"],
        },
        executor=execute,
    )


def database_update_tool(store: PurchaseStore) -> Tool:
    async def execute(params: Dict[str, Any]) -> Dict[str, Any]:
        table = params.get("table")
        record_id = params.get("id")
        updates = params.get("updates")
        if table not in UPDATE_TABLES:
            raise ToolExecutionError(f"Failed to update database: unknown table {table!r}")
        if not record_id or not isinstance(updates, dict):
            raise ToolExecutionError("Failed to update database: id and updates are required")

        try:
            updated = await store.update(table, str(record_id), updates)
        except Exception as exc:
            logger.error("Database update failed: %s", exc)
            raise ToolExecutionError(f"Failed to update database: {exc}") from exc

        if updated is None:
            raise ToolExecutionError(f"Failed to update database: no {table} record with id {record_id}")

        return {"success": True, "table": table, "id": record_id, "updated_record": updated}

    return Tool(
        name="database_update",
        description=(
            "Update existing records in the database. Use this to update purchase information, mark items "
            "as returned, save warranty details, or modify other records. Requires record ID."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "table": {"type": "string", "enum": UPDATE_TABLES, "description": "The table to update"},
                "id": {"type": "string", "description": "The ID of the record to update"},
                "updates": {"type": "object", "description": "The fields to update with their new values"},
            },
            "required": ["table", "id", "updates"],
        },
        executor=execute,
    )
