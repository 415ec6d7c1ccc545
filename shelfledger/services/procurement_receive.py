# shelfledger/services/procurement_receive.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.db.base import utcnow
from shelfledger.models.enums import MovementReason, ProcurementStatus
from shelfledger.models.procurement import Procurement, ProcurementItem
from shelfledger.services.errors import InvalidInput, InvalidQuantity, ProcurementNotFound
from shelfledger.services.inventory_service import InventoryService
from shelfledger.services.procurement_queries import get_procurement_with_items
from shelfledger.services.procurement_state import derive_status_after_receipt, ensure_receivable
from shelfledger.services.stock_levels import to_quantity

log = logging.getLogger("shelfledger.procurement")


@dataclass(frozen=True)
class ReceiveLine:
    item_id: int
    quantity_received: Decimal
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None


async def credit_items(
    session: AsyncSession,
    *,
    procurement: Procurement,
    lines: Sequence[tuple[ProcurementItem, ReceiveLine]],
    inventory: InventoryService,
    actor_id: Optional[int] = None,
) -> None:
    """
    已校验的收货行：行累计收货量增加 + 入库（reason=RECEIPT，ref=PO-{id}）。
    入库顺序按规格 id 升序（与调拨 / 销售一致的加锁顺序）。
    """
    ref = f"PO-{procurement.id}"
    for item, line in sorted(lines, key=lambda p: (p[0].variant_id, p[0].id)):
        qty = Decimal(line.quantity_received)
        item.quantity_received = Decimal(item.quantity_received or 0) + qty
        await inventory.adjust(
            session,
            warehouse_id=procurement.warehouse_id,
            variant_id=item.variant_id,
            delta=qty,
            reason=MovementReason.RECEIPT,
            ref=ref,
            batch_number=line.batch_number,
            expiry_date=line.expiry_date,
            actor_id=actor_id,
        )
    procurement.last_received_at = utcnow()


async def receive_items(
    session: AsyncSession,
    *,
    procurement_id: int,
    lines: Sequence[ReceiveLine],
    inventory: InventoryService,
    actor_id: Optional[int] = None,
) -> Procurement:
    """
    采购收货（整单原子）：

    - 锁采购单头；只有 ordered / partial 可收货，其余状态 InvalidTransition
    - 每行 quantity_received > 0，item 必须属于该采购单
    - 同一 item 多行先汇总；任何 item 累计收货 > 订购量 → 整单拒绝（InvalidInput），不截断
    - 全部行完成 → received，否则 partial
    """
    proc = await get_procurement_with_items(session, procurement_id, for_update=True)
    if proc is None:
        raise ProcurementNotFound(int(procurement_id))

    ensure_receivable(ProcurementStatus(proc.status))
    if not lines:
        raise InvalidInput("收货明细不能为空", context={"field": "items"})

    by_id: Dict[int, ProcurementItem] = {int(it.id): it for it in proc.items}
    pending: Dict[int, Decimal] = {}
    accepted: list[tuple[ProcurementItem, ReceiveLine]] = []
    for idx, line in enumerate(lines):
        qty = to_quantity(line.quantity_received, field="quantity_received")
        if qty <= 0:
            raise InvalidQuantity(
                "收货数量必须大于 0",
                context={"path": f"items[{idx}]", "item_id": line.item_id},
            )
        item = by_id.get(int(line.item_id))
        if item is None:
            raise InvalidInput(
                f"明细 {line.item_id} 不属于采购单 {proc.id}",
                context={"path": f"items[{idx}]", "item_id": line.item_id},
            )
        pending[item.id] = pending.get(item.id, Decimal("0")) + qty
        accepted.append((item, ReceiveLine(item.id, qty, line.batch_number, line.expiry_date)))

    for item_id, add in pending.items():
        item = by_id[item_id]
        if Decimal(item.quantity_received or 0) + add > Decimal(item.quantity_ordered):
            raise InvalidInput(
                f"明细 {item_id} 累计收货将超过订购量",
                context={
                    "item_id": item_id,
                    "quantity_ordered": str(item.quantity_ordered),
                    "quantity_received": str(item.quantity_received),
                    "requested": str(add),
                },
            )

    await credit_items(
        session, procurement=proc, lines=accepted, inventory=inventory, actor_id=actor_id
    )
    proc.status = derive_status_after_receipt(
        ProcurementStatus(proc.status), all(it.is_complete for it in proc.items)
    ).value
    await session.flush()
    log.info("receipt po=%s lines=%d status=%s", proc.id, len(accepted), proc.status)
    return proc
