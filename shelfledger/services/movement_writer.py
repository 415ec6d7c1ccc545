# shelfledger/services/movement_writer.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.db.base import utcnow
from shelfledger.metrics import MOVEMENTS
from shelfledger.models.enums import MovementReason
from shelfledger.models.inventory_movement import InventoryMovement


async def write_movement(
    session: AsyncSession,
    *,
    warehouse_id: int,
    variant_id: int,
    reason: MovementReason,
    delta: Decimal,
    after_quantity: Decimal,
    ref: Optional[str] = None,
    actor_id: Optional[int] = None,
    occurred_at: Optional[datetime] = None,
) -> int:
    """
    流水写入（与余额变更同事务）：

    - 每次实际落地的增减写一行，返回生成的 id
    - after_quantity 取自余额语句的 RETURNING，而不是事后再读
    """
    stmt = (
        insert(InventoryMovement)
        .values(
            warehouse_id=int(warehouse_id),
            variant_id=int(variant_id),
            reason=str(reason),
            ref=ref,
            delta=delta,
            after_quantity=after_quantity,
            actor_id=actor_id,
            occurred_at=occurred_at or utcnow(),
        )
        .returning(InventoryMovement.id)
    )
    new_id = (await session.execute(stmt)).scalar_one()
    MOVEMENTS.labels(reason=str(reason)).inc()
    return int(new_id)
