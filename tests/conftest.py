from decimal import Decimal

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.main import app
from app.core import models
from app.core.database import Base
from app.core.data_access import DataAccess


# A throwaway SQLite file per test; the real app talks to Postgres
@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}", echo=False)
    async with engine.begin() as conn:
        # Create all tables
        await conn.run_sync(Base.metadata.create_all)
    yield engine  # Tests happens here
    await engine.dispose()


# 50 users, 5 products, one order with two items, no reviews
@pytest_asyncio.fixture(scope="function")
async def seeded_engine(test_engine):
    sessions = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with sessions() as session:
        users = [
            models.User(
                username=f"user{i}",
                email=f"user{i}@example.com",
                first_name=f"First{i}",
                last_name=f"Last{i}",
            )
            for i in range(1, 51)
        ]
        products = [
            models.Product(name="Laptop Pro", category="Electronics", price=Decimal("1299.99"), stock_quantity=7),
            models.Product(name="Wireless Mouse", category="Electronics", price=Decimal("24.99"), stock_quantity=120),
            models.Product(name="Desk Lamp", category="Home", price=Decimal("39.50"), stock_quantity=30),
            models.Product(name="Pen", category="Office", price=Decimal("1.99"), stock_quantity=500),
            models.Product(name="Notebook", category=None, price=Decimal("4.50"), stock_quantity=80),
        ]
        session.add_all(users + products)
        await session.flush()

        order = models.Order(user_id=users[0].id, total_amount=Decimal("26.98"), status="completed")
        session.add(order)
        await session.flush()
        session.add_all(
            [
                models.OrderItem(order_id=order.id, product_id=products[1].id, quantity=1, unit_price=Decimal("24.99")),
                models.OrderItem(order_id=order.id, product_id=products[3].id, quantity=1, unit_price=Decimal("1.99")),
            ]
        )
        await session.commit()
    return test_engine


@pytest_asyncio.fixture(scope="function")
async def data_access(seeded_engine):
    return DataAccess(seeded_engine, timeout=5)


# Client; tests plug their own services in through app.dependency_overrides
@pytest_asyncio.fixture(scope="function")
async def client():
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
