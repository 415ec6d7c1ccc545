# shelfledger/db/engine.py
# 统一引擎工厂：PG 走 pool_pre_ping；SQLite 走 BEGIN IMMEDIATE 串行写
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

__all__ = ["create_async_engine_safe", "is_sqlite"]


def is_sqlite(url_str: str) -> bool:
    return make_url(url_str).get_backend_name().startswith("sqlite")


def _connect_args_for(url_str: str, *, busy_timeout: float) -> dict[str, Any]:
    """
    返回后端专属 connect_args：
    - PostgreSQL(psycopg): 无
    - SQLite: check_same_thread + 忙等超时（写锁竞争时排队而不是立刻报 locked）
    """
    if is_sqlite(url_str):
        return {"check_same_thread": False, "timeout": busy_timeout}
    return {}


def _install_sqlite_begin_immediate(engine: AsyncEngine) -> None:
    """
    接管 pysqlite/aiosqlite 的事务起点：
    - 关闭驱动自带的延迟 BEGIN，SAVEPOINT 才能正常工作
    - 每个事务一开始就 BEGIN IMMEDIATE 拿写锁，并发写串行化
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_async_engine_safe(
    url_str: str,
    *,
    echo: bool = False,
    pool_size: Optional[int] = None,
    max_overflow: Optional[int] = None,
    busy_timeout: float = 30.0,
    poolclass: Any = None,
) -> AsyncEngine:
    """Async 引擎（'postgresql+psycopg' 或 'sqlite+aiosqlite'）。"""
    kwargs: dict[str, Any] = {"echo": echo}
    connect_args = _connect_args_for(url_str, busy_timeout=busy_timeout)
    if connect_args:
        kwargs["connect_args"] = connect_args

    if is_sqlite(url_str):
        # 文件库每次新连接，避免跨事件循环复用连接
        kwargs["poolclass"] = poolclass or NullPool
    else:
        kwargs["pool_pre_ping"] = True
        if poolclass is not None:
            kwargs["poolclass"] = poolclass
        else:
            if pool_size is not None:
                kwargs["pool_size"] = pool_size
            if max_overflow is not None:
                kwargs["max_overflow"] = max_overflow

    engine = create_async_engine(url_str, **kwargs)
    if is_sqlite(url_str):
        _install_sqlite_begin_immediate(engine)
    return engine
