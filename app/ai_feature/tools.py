"""
Read-only tools the model can call.

Every tool takes one string argument and returns one string. invoke()
never raises: a failure comes back as "<prefix>: <reason>" so the model
sees it on its next turn and can retry or explain.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import DBAPIError

from app.core.data_access import DataAccess


logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_LIMIT = 5


class ToolDescriptor(BaseModel):
    """What the model sees of a tool: its name, when to use it, one string input."""

    name: str
    description: str

    model_config = ConfigDict(frozen=True)


def describe_error(error: BaseException) -> str:
    # Driver errors carry the useful message on .orig; the wrapper adds SQL and links
    if isinstance(error, DBAPIError) and error.orig is not None:
        message = str(error.orig)
    else:
        message = str(error)
    return message.strip() or error.__class__.__name__


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def split_argument(argument: str) -> List[str]:
    """Comma-separated parts, trimmed. "products, price ,min" -> ["products", "price", "min"]"""
    return [part.strip() for part in (argument or "").split(",")]


NUMBER_PREFIX = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def leading_number(value: str) -> Optional[float]:
    """The number a string starts with: "100usd" -> 100.0, "cheap" -> None"""
    match = NUMBER_PREFIX.match(value.strip())
    return float(match.group(0)) if match else None


class Tool(ABC):
    name: str = ""
    description: str = ""
    error_prefix: str = "Error"

    @property
    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(name=self.name, description=self.description)

    async def invoke(self, argument: str = "") -> str:
        try:
            return await self._call((argument or "").strip())
        except Exception as error:
            logger.warning(f"Tool {self.name} failed on {argument!r}: {error}")
            return f"{self.error_prefix}: {describe_error(error)}"

    @abstractmethod
    async def _call(self, argument: str) -> str:
        ...


class DatabaseTool(Tool, ABC):
    def __init__(self, data_access: DataAccess):
        self.data_access = data_access


# =========================
# SQL tools
# =========================
class QueryDatabaseTool(DatabaseTool):
    name = "query_database"
    description = (
        "Execute SQL queries on the database. Use list_tables first to see available tables, "
        "then get_table_info to understand table structure before writing queries. Available "
        "tables include: users, products, orders, reviews, order_items, order_summary, and "
        "product_analytics. Only read data; never modify it."
    )
    error_prefix = "Error executing query"

    async def _call(self, argument: str) -> str:
        rows = await self.data_access.run_query(argument)
        return to_json(rows)


class ListTablesTool(DatabaseTool):
    name = "list_tables"
    description = (
        "List all available tables in the database. Use this first to understand what tables "
        "are available before writing SQL queries."
    )
    error_prefix = "Error listing tables"

    async def _call(self, argument: str) -> str:
        tables = await self.data_access.list_tables()
        return f"Available tables: {', '.join(tables)}"


class GetTableInfoTool(DatabaseTool):
    name = "get_table_info"
    description = (
        "Get detailed information about a specific table including column names, data types, "
        "and constraints. Use this to understand the structure of a table before writing SQL "
        "queries. Input should be the table name."
    )
    error_prefix = "Error getting table info"

    async def _call(self, argument: str) -> str:
        columns = await self.data_access.describe_table(argument)
        return to_json(columns)


class GetSampleDataTool(DatabaseTool):
    name = "get_sample_data"
    description = (
        "Get sample data from a specific table. Use this to understand the structure and "
        "content of tables. Input: table name, optionally followed by a comma and a row "
        f"limit (default {DEFAULT_SAMPLE_LIMIT}). Example: \"products, 3\"."
    )
    error_prefix = "Error getting sample data"

    @staticmethod
    def parse_argument(argument: str) -> Tuple[str, int]:
        parts = split_argument(argument)
        table_name = parts[0]
        limit = DEFAULT_SAMPLE_LIMIT
        if len(parts) > 1 and parts[1]:
            try:
                limit = int(parts[1])
            except ValueError:
                limit = DEFAULT_SAMPLE_LIMIT
        if limit <= 0:
            limit = DEFAULT_SAMPLE_LIMIT
        return table_name, limit

    async def _call(self, argument: str) -> str:
        table_name, limit = self.parse_argument(argument)
        rows = await self.data_access.sample_rows(table_name, limit)
        return to_json(rows)


class GetProductAnalyticsTool(DatabaseTool):
    name = "get_product_analytics"
    description = "Get product analytics including sales, ratings, and performance metrics."
    error_prefix = "Error getting product analytics"

    async def _call(self, argument: str) -> str:
        rows = await self.data_access.run_query(
            "SELECT * FROM product_analytics ORDER BY total_quantity_sold DESC"
        )
        return to_json(rows)


class GetOrderSummaryTool(DatabaseTool):
    name = "get_order_summary"
    description = (
        "Get order summary information including user details, order amounts, and status."
    )
    error_prefix = "Error getting order summary"

    async def _call(self, argument: str) -> str:
        rows = await self.data_access.run_query(
            "SELECT * FROM order_summary ORDER BY created_at DESC"
        )
        return to_json(rows)


class GetDatabaseSchemaTool(DatabaseTool):
    name = "get_database_schema"
    description = (
        "Get a comprehensive overview of the database schema including all tables, their "
        "columns, and relationships. Use this to understand the overall database structure "
        "before writing queries."
    )
    error_prefix = "Error getting database schema"

    async def _call(self, argument: str) -> str:
        lines = ["Database Schema Overview:", ""]
        for table_name in await self.data_access.list_tables():
            lines.append(f"Table: {table_name}")
            lines.append("Columns:")
            for col in await self.data_access.describe_table(table_name):
                not_null = " NOT NULL" if col["is_nullable"] == "NO" else ""
                lines.append(f"  - {col['column_name']} ({col['data_type']}){not_null}")
            lines.append("")
        return "\n".join(lines) + "\n"


class CountRowsTool(DatabaseTool):
    name = "count_rows"
    description = (
        "Count the number of rows in a specific table. Input should be the table name. Use "
        'this to answer questions like "How many users/orders/products are there?" Always use '
        "this tool for factual counts."
    )
    error_prefix = "Error counting rows"

    async def _call(self, argument: str) -> str:
        count = await self.data_access.count_rows(argument)
        return f"There are {count} rows in the {argument} table."


class GetRowWithExtremeValueTool(DatabaseTool):
    name = "get_row_with_extreme_value"
    description = (
        "Get the row with the maximum (highest, most) or minimum (lowest, least) value in a "
        'specific column of a table. Use for questions like "Which product has the highest '
        'stock?" or "Which order has the lowest total amount?" Input should be: table name, '
        'column name, and either "max" (for highest/maximum/most) or "min" (for '
        'lowest/minimum/least). Example: "products, stock_quantity, max" for highest stock '
        'product, or "products, price, min" for lowest price product.'
    )

    async def _call(self, argument: str) -> str:
        parts = split_argument(argument)
        table_name = parts[0]
        column_name = parts[1] if len(parts) > 1 else ""
        extreme = parts[2] if len(parts) > 2 and parts[2] else "max"
        if not table_name or not column_name:
            return "Error: Please provide both table name and column name."

        row = await self.data_access.extreme_row(
            table_name, column_name, descending=extreme.lower() != "min"
        )
        if row is None:
            return f"No rows found in {table_name}."
        return to_json(row)


# =========================
# Entity tools
# =========================
class GetUsersTool(DatabaseTool):
    name = "get_users"
    description = "Get all users from the database with their basic information."
    error_prefix = "Error getting users"

    async def _call(self, argument: str) -> str:
        return to_json(await self.data_access.fetch_users())


class GetProductsTool(DatabaseTool):
    name = "get_products"
    description = "Get all products from the database with their details and pricing."
    error_prefix = "Error getting products"

    async def _call(self, argument: str) -> str:
        return to_json(await self.data_access.fetch_products())


class GetOrdersTool(DatabaseTool):
    name = "get_orders"
    description = "Get all orders with user details and order items."
    error_prefix = "Error getting orders"

    async def _call(self, argument: str) -> str:
        return to_json(await self.data_access.fetch_orders())


class GetReviewsTool(DatabaseTool):
    name = "get_reviews"
    description = "Get all product reviews with user and product information."
    error_prefix = "Error getting reviews"

    async def _call(self, argument: str) -> str:
        return to_json(await self.data_access.fetch_reviews())


class SearchProductsTool(DatabaseTool):
    name = "search_products"
    description = (
        'Search products by name, category, or price range. Input format: "category:Electronics" '
        'or "price_min:100,price_max:500" or "name:Laptop". Filters can be combined with commas.'
    )
    error_prefix = "Error searching products"

    @staticmethod
    def apply_filter(products: List[Dict[str, Any]], term: str) -> List[Dict[str, Any]]:
        """Narrow the products by one lowercase key:value term. Unknown keys change nothing."""
        key, _, value = term.partition(":")
        key, value = key.strip(), value.strip()

        if key == "category":
            return [p for p in products if value in (p.get("category") or "").lower()]
        if key == "name":
            return [p for p in products if value in (p.get("name") or "").lower()]
        if key in ("price_min", "price_max"):
            bound = leading_number(value)
            # An unreadable bound matches nothing
            if bound is None:
                return []
            if key == "price_min":
                return [p for p in products if float(p["price"]) >= bound]
            return [p for p in products if float(p["price"]) <= bound]
        return products

    async def _call(self, argument: str) -> str:
        products = await self.data_access.fetch_products()
        for term in split_argument(argument.lower()):
            if term:
                products = self.apply_filter(products, term)
        return to_json(products)


def build_tools(data_access: DataAccess) -> List[Tool]:
    """The fixed catalogue, in the order the model sees it."""
    return [
        QueryDatabaseTool(data_access),
        ListTablesTool(data_access),
        GetTableInfoTool(data_access),
        GetSampleDataTool(data_access),
        GetProductAnalyticsTool(data_access),
        GetOrderSummaryTool(data_access),
        GetDatabaseSchemaTool(data_access),
        CountRowsTool(data_access),
        GetRowWithExtremeValueTool(data_access),
        GetUsersTool(data_access),
        GetProductsTool(data_access),
        GetOrdersTool(data_access),
        GetReviewsTool(data_access),
        SearchProductsTool(data_access),
    ]
