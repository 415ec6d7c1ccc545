# shelfledger/core/tx.py
from __future__ import annotations

from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.services.errors import LedgerError


@asynccontextmanager
async def tx_commit(session: AsyncSession):
    """
    Commit 事务：正常结束提交，异常回滚。
    Handler / Service 内部不得控事务，只有这里提交。

    例外：commit_on_error=True 的业务错误（调拨应用阶段失败）先提交再抛出，
    这样 failed 调拨单落库，而保存点内的库存变动已回滚。
    """
    try:
        yield
    except LedgerError as e:
        if e.commit_on_error:
            await session.commit()
        else:
            await session.rollback()
        raise
    except Exception:
        await session.rollback()
        raise
    else:
        await session.commit()
