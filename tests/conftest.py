# tests/conftest.py
from __future__ import annotations

import os
from decimal import Decimal
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

import shelfledger.models  # noqa: F401  注册全部表
from shelfledger.db.base import Base
from shelfledger.db.engine import create_async_engine_safe
from shelfledger.db.session import get_session, normalize_async_dsn
from shelfledger.main import app
from shelfledger.models.catalog import ProductFamily, ProductVariant
from shelfledger.models.supplier import Supplier
from shelfledger.models.warehouse import Warehouse
from tests.helpers.inventory import ACTOR, RICE, RICE_6PACK, SOAP, SUPPLIER, WH_A, WH_B, WH_C

# ==========================
# 数据库 DSN：
#   设置 SHELF_TEST_DATABASE_URL 时用它（例如 PostgreSQL）；
#   否则每个用例一个独立的 SQLite 文件（tmp_path 下）
# ==========================
PG_URL = os.getenv("SHELF_TEST_DATABASE_URL")


@pytest.fixture
def database_url(tmp_path) -> str:
    if PG_URL:
        return normalize_async_dsn(PG_URL)
    return f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"


async def _seed(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.execute(
            insert(Warehouse),
            [
                {"id": WH_A, "name": "WH-1", "type": "store"},
                {"id": WH_B, "name": "WH-2", "type": "distribution_center"},
                {"id": WH_C, "name": "WH-3", "type": "factory"},
            ],
        )
        await conn.execute(
            insert(ProductFamily),
            [{"id": 1, "name": "Rice"}, {"id": 2, "name": "Soap"}],
        )
        await conn.execute(
            insert(ProductVariant),
            [
                {
                    "id": SOAP,
                    "family_id": 2,
                    "name": "Soap bar",
                    "sku": "SKU-0005",
                    "unit": "pcs",
                    "cost_price": Decimal("12.00"),
                    "conversion_factor": Decimal("1"),
                },
                {
                    "id": RICE,
                    "family_id": 1,
                    "name": "Rice 1kg",
                    "sku": "SKU-0006",
                    "unit": "kg",
                    "cost_price": Decimal("50.00"),
                    "conversion_factor": Decimal("1"),
                },
                {
                    "id": RICE_6PACK,
                    "family_id": 1,
                    "name": "Rice 1kg x6",
                    "sku": "SKU-0007",
                    "unit": "pack",
                    "cost_price": Decimal("290.00"),
                    "conversion_factor": Decimal("6"),
                },
            ],
        )
        await conn.execute(insert(Supplier), [{"id": SUPPLIER, "name": "Acme Foods"}])


# =========================================
# 每用例独立 Engine（NullPool，避免跨 loop）+ 建表 + 最小种子
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine_safe(database_url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await _seed(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """标准 Session；事务由用例自己通过 tx_commit 控制"""
    async with async_session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


# =========================================
# FastAPI / httpx AsyncClient（get_session 指向测试库）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(async_session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as sess:
            yield sess

    app.dependency_overrides[get_session] = _override_session
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(
            transport=transport,
            base_url="http://testserver",
            headers={"X-User-Id": str(ACTOR)},
            timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=5.0, pool=5.0),
        ) as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_session, None)
