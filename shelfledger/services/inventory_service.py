# shelfledger/services/inventory_service.py
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shelfledger.core.config import get_settings
from shelfledger.models.enums import MovementReason
from shelfledger.models.inventory_level import InventoryLevel
from shelfledger.models.inventory_movement import InventoryMovement
from shelfledger.models.inventory_transfer import InventoryTransfer
from shelfledger.services.errors import InsufficientStock, InvalidQuantity, TransferNotFound
from shelfledger.services.inventory_transfer import TransferLine, execute_transfer
from shelfledger.services.movement_writer import write_movement
from shelfledger.services.registry import require_variant, require_warehouse
from shelfledger.services.stock_levels import (
    decrement_strict,
    load_level,
    query_expiring,
    query_levels,
    query_low_stock,
    read_quantity,
    to_quantity,
    upsert_increment,
)

log = logging.getLogger("shelfledger.inventory")


class InventoryService:
    """
    库存台账（唯一写入口）：

    - get_level / adjust：单行余额读写，adjust 一条 SQL 完成增减
    - transfer：仓间调拨（见 inventory_transfer.py）
    - 只读查询：调拨单 / 临期 / 低库存 / 余额列表 / 流水

    Service 不提交事务；事务边界在 API 层（core/tx.py::tx_commit）。
    """

    async def get_level(
        self, session: AsyncSession, *, warehouse_id: int, variant_id: int
    ) -> InventoryLevel:
        return await load_level(session, warehouse_id=warehouse_id, variant_id=variant_id)

    async def adjust(
        self,
        session: AsyncSession,
        *,
        warehouse_id: int,
        variant_id: int,
        delta,
        reason: MovementReason = MovementReason.ADJUSTMENT,
        ref: Optional[str] = None,
        batch_number: Optional[str] = None,
        expiry_date: Optional[date] = None,
        allow_negative: bool = False,
        actor_id: Optional[int] = None,
    ) -> InventoryLevel:
        """
        原子调整库存，返回调整后的余额行。

        - delta > 0：upsert 加（行不存在则建）
        - delta < 0：条件扣减，余额不足 → InsufficientStock，不做任何写入
        - allow_negative=True 仅供人工纠偏；系统扣减（调拨 / 销售）永远走严格扣减
        """
        d = to_quantity(delta, field="delta")
        if d == 0:
            raise InvalidQuantity("delta 不能为 0", context={"field": "delta"})

        await require_warehouse(session, warehouse_id)
        await require_variant(session, variant_id)

        if d > 0 or allow_negative:
            after = await upsert_increment(
                session,
                warehouse_id=warehouse_id,
                variant_id=variant_id,
                delta=d,
                batch_number=batch_number,
                expiry_date=expiry_date,
            )
        else:
            after = await decrement_strict(
                session,
                warehouse_id=warehouse_id,
                variant_id=variant_id,
                amount=-d,
                batch_number=batch_number,
                expiry_date=expiry_date,
            )
            if after is None:
                available = await read_quantity(
                    session, warehouse_id=warehouse_id, variant_id=variant_id
                )
                raise InsufficientStock(
                    warehouse_id=int(warehouse_id),
                    variant_id=int(variant_id),
                    requested=-d,
                    available=available,
                )

        await write_movement(
            session,
            warehouse_id=warehouse_id,
            variant_id=variant_id,
            reason=reason,
            delta=d,
            after_quantity=after,
            ref=ref,
            actor_id=actor_id,
        )
        log.info(
            "adjust wh=%s variant=%s delta=%s after=%s reason=%s ref=%s",
            warehouse_id,
            variant_id,
            d,
            after,
            reason,
            ref,
        )
        return await load_level(session, warehouse_id=warehouse_id, variant_id=variant_id)

    async def transfer(
        self,
        session: AsyncSession,
        *,
        source_warehouse_id: int,
        destination_warehouse_id: int,
        authorized_by_user_id: int,
        items: Sequence[TransferLine],
    ) -> InventoryTransfer:
        return await execute_transfer(
            session,
            source_warehouse_id=source_warehouse_id,
            destination_warehouse_id=destination_warehouse_id,
            authorized_by_user_id=authorized_by_user_id,
            items=items,
        )

    async def get_transfer(self, session: AsyncSession, *, transfer_id: int) -> InventoryTransfer:
        stmt = (
            select(InventoryTransfer)
            .options(selectinload(InventoryTransfer.items))
            .where(InventoryTransfer.id == int(transfer_id))
            .execution_options(populate_existing=True)
        )
        t = (await session.execute(stmt)).scalars().first()
        if t is None:
            raise TransferNotFound(int(transfer_id))
        return t

    async def list_transfers(
        self, session: AsyncSession, *, offset: int = 0, limit: int = 20
    ) -> Tuple[List[InventoryTransfer], int]:
        total = (
            await session.execute(select(func.count()).select_from(InventoryTransfer))
        ).scalar_one()
        stmt = (
            select(InventoryTransfer)
            .options(selectinload(InventoryTransfer.items))
            .order_by(InventoryTransfer.id.desc())
            .offset(int(offset))
            .limit(int(limit))
        )
        rows = (await session.execute(stmt)).scalars().all()
        return list(rows), int(total)

    async def get_expiring_stock(
        self, session: AsyncSession, *, days: Optional[int] = None, today: Optional[date] = None
    ) -> List[InventoryLevel]:
        if days is None:
            days = get_settings().EXPIRY_WINDOW_DAYS
        rows = await query_expiring(session, days=days, today=today)
        return list(rows)

    async def get_low_stock(
        self, session: AsyncSession, *, threshold=None
    ) -> List[InventoryLevel]:
        limit_qty = (
            get_settings().LOW_STOCK_THRESHOLD
            if threshold is None
            else to_quantity(threshold, field="threshold")
        )
        rows = await query_low_stock(session, threshold=Decimal(limit_qty))
        return list(rows)

    async def list_levels(
        self,
        session: AsyncSession,
        *,
        offset: int = 0,
        limit: int = 20,
        warehouse_id: Optional[int] = None,
    ) -> Tuple[List[InventoryLevel], int]:
        if warehouse_id is not None:
            await require_warehouse(session, warehouse_id)
        return await query_levels(session, offset=offset, limit=limit, warehouse_id=warehouse_id)

    async def list_levels_by_variant(
        self, session: AsyncSession, *, variant_id: int
    ) -> List[InventoryLevel]:
        await require_variant(session, variant_id)
        stmt = (
            select(InventoryLevel)
            .where(InventoryLevel.variant_id == int(variant_id))
            .order_by(InventoryLevel.warehouse_id)
            .execution_options(populate_existing=True)
        )
        return list((await session.execute(stmt)).scalars().all())

    async def list_movements(
        self,
        session: AsyncSession,
        *,
        warehouse_id: Optional[int] = None,
        variant_id: Optional[int] = None,
        ref: Optional[str] = None,
        limit: int = 100,
    ) -> List[InventoryMovement]:
        stmt = select(InventoryMovement)
        if warehouse_id is not None:
            stmt = stmt.where(InventoryMovement.warehouse_id == int(warehouse_id))
        if variant_id is not None:
            stmt = stmt.where(InventoryMovement.variant_id == int(variant_id))
        if ref:
            stmt = stmt.where(InventoryMovement.ref == ref)
        stmt = stmt.order_by(InventoryMovement.id.desc()).limit(int(limit))
        return list((await session.execute(stmt)).scalars().all())
