# shelfledger/services/inventory_transfer.py
"""
仓间调拨：

1) 只读校验（同仓 / 空单 / 仓库 / 数量 / 规格 / 源仓余额），任何写入之前完成
2) 调拨单（pending）+ 明细落库
3) 保存点内按规格 id 升序逐行：源仓条件扣减 → 目的仓 upsert 加
4) 全部成功 → completed；某行被并发抽空 → 回滚保存点、标记 failed，
   抛出带 transfer_id 的 InsufficientStock（事务边界提交 failed 单）
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.db.base import utcnow
from shelfledger.models.enums import MovementReason, TransferStatus
from shelfledger.models.inventory_transfer import InventoryTransfer, InventoryTransferItem
from shelfledger.services.errors import (
    InsufficientStock,
    InvalidInput,
    InvalidQuantity,
    SameWarehouse,
)
from shelfledger.services.movement_writer import write_movement
from shelfledger.services.registry import require_variant, require_warehouse
from shelfledger.services.stock_levels import (
    decrement_strict,
    read_quantity,
    to_quantity,
    upsert_increment,
)

log = logging.getLogger("shelfledger.transfer")


@dataclass(frozen=True)
class TransferLine:
    variant_id: int
    quantity: Decimal


async def _validate(
    session: AsyncSession,
    *,
    source_warehouse_id: int,
    destination_warehouse_id: int,
    items: Sequence[TransferLine],
) -> Dict[int, Decimal]:
    """返回按规格汇总后的调拨量（已确认源仓当前余额足够）。"""
    if int(source_warehouse_id) == int(destination_warehouse_id):
        raise SameWarehouse(int(source_warehouse_id))
    if not items:
        raise InvalidInput("调拨明细不能为空", context={"field": "items"})

    await require_warehouse(session, source_warehouse_id)
    await require_warehouse(session, destination_warehouse_id)

    requested: Dict[int, Decimal] = {}
    for idx, line in enumerate(items):
        qty = to_quantity(line.quantity)
        if qty <= 0:
            raise InvalidQuantity(
                "调拨数量必须大于 0",
                context={"path": f"items[{idx}]", "variant_id": line.variant_id},
            )
        await require_variant(session, line.variant_id)
        vid = int(line.variant_id)
        requested[vid] = requested.get(vid, Decimal("0")) + qty

    for vid in sorted(requested):
        available = await read_quantity(
            session, warehouse_id=source_warehouse_id, variant_id=vid
        )
        if available < requested[vid]:
            raise InsufficientStock(
                warehouse_id=int(source_warehouse_id),
                variant_id=vid,
                requested=requested[vid],
                available=available,
            )
    return requested


async def execute_transfer(
    session: AsyncSession,
    *,
    source_warehouse_id: int,
    destination_warehouse_id: int,
    authorized_by_user_id: int,
    items: Sequence[TransferLine],
) -> InventoryTransfer:
    requested = await _validate(
        session,
        source_warehouse_id=source_warehouse_id,
        destination_warehouse_id=destination_warehouse_id,
        items=items,
    )

    transfer = InventoryTransfer(
        source_warehouse_id=int(source_warehouse_id),
        destination_warehouse_id=int(destination_warehouse_id),
        authorized_by_user_id=int(authorized_by_user_id),
        status=TransferStatus.PENDING.value,
        transferred_at=utcnow(),
        items=[
            InventoryTransferItem(variant_id=int(line.variant_id), quantity=to_quantity(line.quantity))
            for line in items
        ],
    )
    session.add(transfer)
    await session.flush()
    transfer_id = int(transfer.id)
    ref = f"TRF-{transfer_id}"

    try:
        async with session.begin_nested():
            # 固定加锁顺序：规格 id 升序
            for vid in sorted(requested):
                qty = requested[vid]
                src_after = await decrement_strict(
                    session,
                    warehouse_id=source_warehouse_id,
                    variant_id=vid,
                    amount=qty,
                )
                if src_after is None:
                    available = await read_quantity(
                        session, warehouse_id=source_warehouse_id, variant_id=vid
                    )
                    raise InsufficientStock(
                        warehouse_id=int(source_warehouse_id),
                        variant_id=vid,
                        requested=qty,
                        available=available,
                    )
                await write_movement(
                    session,
                    warehouse_id=source_warehouse_id,
                    variant_id=vid,
                    reason=MovementReason.TRANSFER_OUT,
                    delta=-qty,
                    after_quantity=src_after,
                    ref=ref,
                    actor_id=authorized_by_user_id,
                )

                dst_after = await upsert_increment(
                    session,
                    warehouse_id=destination_warehouse_id,
                    variant_id=vid,
                    delta=qty,
                )
                await write_movement(
                    session,
                    warehouse_id=destination_warehouse_id,
                    variant_id=vid,
                    reason=MovementReason.TRANSFER_IN,
                    delta=qty,
                    after_quantity=dst_after,
                    ref=ref,
                    actor_id=authorized_by_user_id,
                )
    except InsufficientStock as e:
        transfer.status = TransferStatus.FAILED.value
        await session.flush()
        log.warning(
            "transfer failed id=%s wh=%s->%s variant=%s requested=%s available=%s",
            transfer_id,
            source_warehouse_id,
            destination_warehouse_id,
            e.variant_id,
            e.requested,
            e.available,
        )
        raise InsufficientStock(
            warehouse_id=e.warehouse_id,
            variant_id=e.variant_id,
            requested=e.requested,
            available=e.available,
            transfer_id=transfer_id,
        ) from e

    transfer.status = TransferStatus.COMPLETED.value
    transfer.completed_at = utcnow()
    await session.flush()
    log.info(
        "transfer completed id=%s wh=%s->%s lines=%d",
        transfer_id,
        source_warehouse_id,
        destination_warehouse_id,
        len(requested),
    )
    return transfer
