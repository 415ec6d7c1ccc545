# shelfledger/services/procurement_queries.py
from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shelfledger.models.procurement import Procurement


async def get_procurement_with_items(
    session: AsyncSession,
    procurement_id: int,
    *,
    for_update: bool = False,
) -> Optional[Procurement]:
    """
    获取带明细的采购单（头 + 行）。
    for_update=True 锁住头行，同一采购单的并发收货串行化。
    """
    stmt = (
        select(Procurement)
        .options(selectinload(Procurement.items))
        .where(Procurement.id == int(procurement_id))
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    res = await session.execute(stmt)
    return res.scalars().first()


async def list_procurements(
    session: AsyncSession,
    *,
    offset: int,
    limit: int,
    supplier_id: Optional[int] = None,
    status: Optional[str] = None,
) -> Tuple[List[Procurement], int]:
    conds = []
    if supplier_id is not None:
        conds.append(Procurement.supplier_id == int(supplier_id))
    if status:
        conds.append(Procurement.status == status)

    total = (
        await session.execute(select(func.count()).select_from(Procurement).where(*conds))
    ).scalar_one()
    stmt = (
        select(Procurement)
        .options(selectinload(Procurement.items))
        .where(*conds)
        .order_by(Procurement.id.desc())
        .offset(int(offset))
        .limit(int(limit))
    )
    rows = (await session.execute(stmt)).scalars().all()
    return list(rows), int(total)
