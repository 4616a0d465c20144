import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import func, inspect, literal_column, select, table, column, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import quoted_name

from app.ai_feature.errors import ToolTimeoutError
from app.core import models, schemas


# -----------------------------------------------------------------------------
# DATA ACCESS MODULE
# Purpose: the only read path from the tools into the relational store.
# Every call borrows one pooled connection, runs under a time budget, and
# gives the connection back before returning. Nothing here is ever committed.
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = Dict[str, Any]


def identifier(name: str) -> quoted_name:
    """
    Read an identifier the way unquoted SQL does.

    Bare names fold to lower case; names written in double quotes keep
    their case and are always quoted.

    Example:
        identifier("Users") -> users
        identifier('"Users"') -> "Users"
    """
    name = name.strip()
    if len(name) >= 2 and name.startswith('"') and name.endswith('"'):
        return quoted_name(name[1:-1], True)
    return quoted_name(name.lower(), None)


def split_table_name(name: str):
    """
    Split an optional schema prefix off a table name.

    Example:
        split_table_name("public.users") -> ("public", "users")
        split_table_name("Users") -> (None, "users")
    """
    name = name.strip()
    if "." in name:
        schema, _, table_name = name.partition(".")
        return identifier(schema), identifier(table_name)
    return None, identifier(name)


def table_clause(name: str):
    schema, table_name = split_table_name(name)
    return table(table_name, schema=schema)


class DataAccess:
    """Read-only facade over a pooled async engine."""

    def __init__(
        self,
        engine: AsyncEngine,
        sessions: Optional[async_sessionmaker[AsyncSession]] = None,
        timeout: Optional[float] = 30.0,
    ):
        """
        Args:
            engine: Async engine that owns the connection pool.
            sessions: Session factory for the entity lookups. Built from
                the engine when omitted.
            timeout: Seconds a single call may take. None disables it.
        """
        self.engine = engine
        self.sessions = sessions or async_sessionmaker(
            bind=engine, class_=AsyncSession, expire_on_commit=False
        )
        self.timeout = timeout

    async def _bounded(self, operation: str, coro: Awaitable[T]) -> T:
        if self.timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{operation} timed out after {self.timeout}s")
            raise ToolTimeoutError(f"{operation} timed out after {self.timeout} seconds")

    async def _with_connection(self, operation: str, work: Callable[[AsyncConnection], Awaitable[T]]) -> T:
        async def run() -> T:
            # connect() rolls back on exit, so statements never persist
            async with self.engine.connect() as conn:
                return await work(conn)

        return await self._bounded(operation, run())

    # -------------------------------------------------------------------------
    # Raw queries and introspection
    # -------------------------------------------------------------------------

    async def run_query(self, query: str) -> List[Row]:
        """
        Execute raw SQL text and return the rows as dictionaries.

        The text goes to the driver untouched. Statements that produce no
        rows return an empty list.
        """

        async def work(conn: AsyncConnection) -> List[Row]:
            result = await conn.exec_driver_sql(query)
            if not result.returns_rows:
                return []
            return [dict(row) for row in result.mappings().all()]

        return await self._with_connection("run_query", work)

    async def list_tables(self) -> List[str]:
        """Return table and view names of the default schema, sorted."""

        def inspect_names(sync_conn) -> List[str]:
            inspector = inspect(sync_conn)
            return sorted(set(inspector.get_table_names()) | set(inspector.get_view_names()))

        async def work(conn: AsyncConnection) -> List[str]:
            return await conn.run_sync(inspect_names)

        return await self._with_connection("list_tables", work)

    async def describe_table(self, name: str) -> List[Row]:
        """
        Describe the columns of a table in declaration order.

        Returns:
            One dict per column with column_name, data_type,
            is_nullable ("YES"/"NO") and column_default.

        Raises:
            sqlalchemy.exc.NoSuchTableError if the table does not exist.
        """
        schema, table_name = split_table_name(name)

        def inspect_columns(sync_conn) -> List[Row]:
            columns = inspect(sync_conn).get_columns(table_name, schema=schema)
            return [
                {
                    "column_name": col["name"],
                    "data_type": str(col["type"]),
                    "is_nullable": "YES" if col.get("nullable", True) else "NO",
                    "column_default": col.get("default"),
                }
                for col in columns
            ]

        async def work(conn: AsyncConnection) -> List[Row]:
            return await conn.run_sync(inspect_columns)

        return await self._with_connection("describe_table", work)

    async def sample_rows(self, name: str, limit: int = 5) -> List[Row]:
        """Return up to `limit` rows from a table, in storage order."""
        query = select(literal_column("*")).select_from(table_clause(name)).limit(limit)

        async def work(conn: AsyncConnection) -> List[Row]:
            result = await conn.execute(query)
            return [dict(row) for row in result.mappings().all()]

        return await self._with_connection("sample_rows", work)

    async def count_rows(self, name: str) -> int:
        query = select(func.count().label("count")).select_from(table_clause(name))

        async def work(conn: AsyncConnection) -> int:
            result = await conn.execute(query)
            return int(result.scalar_one())

        return await self._with_connection("count_rows", work)

    async def extreme_row(self, name: str, column_name: str, descending: bool = True) -> Optional[Row]:
        """
        Return the single row holding the highest (descending) or lowest
        value of a column, or None when the table is empty.
        """
        order = column(identifier(column_name))
        query = (
            select(literal_column("*"))
            .select_from(table_clause(name))
            .order_by(order.desc() if descending else order.asc())
            .limit(1)
        )

        async def work(conn: AsyncConnection) -> Optional[Row]:
            result = await conn.execute(query)
            row = result.mappings().first()
            return dict(row) if row is not None else None

        return await self._with_connection("extreme_row", work)

    async def ping(self) -> bool:
        """Health probe: True when a pooled connection can run SELECT 1."""

        async def work(conn: AsyncConnection) -> None:
            await conn.execute(text("SELECT 1"))

        try:
            await self._with_connection("ping", work)
            return True
        except Exception as error:
            logger.error(f"Database connection failed: {error}")
            return False

    # -------------------------------------------------------------------------
    # Entity lookups (mapped tables)
    # -------------------------------------------------------------------------

    async def _fetch(self, operation: str, query, record) -> List[Row]:
        async def run() -> List[Row]:
            async with self.sessions() as session:
                result = await session.execute(query)
                return [
                    record.model_validate(obj).model_dump(mode="json")
                    for obj in result.scalars().all()
                ]

        return await self._bounded(operation, run())

    async def fetch_users(self) -> List[Row]:
        return await self._fetch(
            "fetch_users", select(models.User).order_by(models.User.id), schemas.UserRecord
        )

    async def fetch_products(self) -> List[Row]:
        return await self._fetch(
            "fetch_products",
            select(models.Product).order_by(models.Product.id),
            schemas.ProductRecord,
        )

    async def fetch_orders(self) -> List[Row]:
        query = (
            select(models.Order)
            .options(
                selectinload(models.Order.user),
                selectinload(models.Order.order_items).selectinload(models.OrderItem.product),
            )
            .order_by(models.Order.id)
        )
        return await self._fetch("fetch_orders", query, schemas.OrderRecord)

    async def fetch_reviews(self) -> List[Row]:
        query = (
            select(models.Review)
            .options(selectinload(models.Review.user), selectinload(models.Review.product))
            .order_by(models.Review.id)
        )
        return await self._fetch("fetch_reviews", query, schemas.ReviewRecord)
