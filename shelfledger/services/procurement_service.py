# shelfledger/services/procurement_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.models.enums import ProcurementStatus
from shelfledger.models.procurement import Procurement, ProcurementItem
from shelfledger.services.errors import InvalidInput, InvalidQuantity, ProcurementNotFound
from shelfledger.services.inventory_service import InventoryService
from shelfledger.services.procurement_queries import (
    get_procurement_with_items,
    list_procurements,
)
from shelfledger.services.procurement_receive import ReceiveLine, credit_items, receive_items
from shelfledger.services.procurement_state import ensure_manual_transition, parse_status
from shelfledger.services.registry import require_supplier, require_variant, require_warehouse
from shelfledger.services.stock_levels import to_money, to_quantity

log = logging.getLogger("shelfledger.procurement")


@dataclass(frozen=True)
class ProcurementLine:
    variant_id: int
    quantity: Decimal
    unit_cost: Decimal


class ProcurementService:
    """
    采购单服务：

    - create / get / list：采购单头 + 明细
    - receive_items：按行收货入库（见 procurement_receive.py）
    - update_status：人工状态流转（见 procurement_state.py）
    """

    def __init__(self, inventory: Optional[InventoryService] = None):
        self._inventory = inventory or InventoryService()

    async def create(
        self,
        session: AsyncSession,
        *,
        supplier_id: int,
        warehouse_id: int,
        ordered_by_user_id: int,
        items: Sequence[ProcurementLine],
        expected_delivery: Optional[date] = None,
    ) -> Procurement:
        await require_supplier(session, supplier_id)
        await require_warehouse(session, warehouse_id)
        if not items:
            raise InvalidInput("采购明细不能为空", context={"field": "items"})

        rows: List[ProcurementItem] = []
        for idx, line in enumerate(items):
            qty = to_quantity(line.quantity)
            if qty <= 0:
                raise InvalidQuantity(
                    "采购数量必须大于 0",
                    context={"path": f"items[{idx}]", "variant_id": line.variant_id},
                )
            cost = to_money(line.unit_cost, field="unit_cost")
            if cost < 0:
                raise InvalidInput(
                    "单价不能为负",
                    context={"path": f"items[{idx}]", "variant_id": line.variant_id},
                )
            await require_variant(session, line.variant_id)
            rows.append(
                ProcurementItem(
                    variant_id=int(line.variant_id),
                    quantity_ordered=qty,
                    quantity_received=Decimal("0"),
                    unit_cost=cost,
                )
            )

        proc = Procurement(
            supplier_id=int(supplier_id),
            warehouse_id=int(warehouse_id),
            ordered_by_user_id=int(ordered_by_user_id),
            expected_delivery=expected_delivery,
            status=ProcurementStatus.PENDING.value,
            items=rows,
        )
        session.add(proc)
        await session.flush()
        log.info("procurement created id=%s supplier=%s lines=%d", proc.id, supplier_id, len(rows))
        return proc

    async def get(self, session: AsyncSession, *, procurement_id: int) -> Procurement:
        proc = await get_procurement_with_items(session, procurement_id)
        if proc is None:
            raise ProcurementNotFound(int(procurement_id))
        return proc

    async def list(
        self,
        session: AsyncSession,
        *,
        offset: int = 0,
        limit: int = 20,
        supplier_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[Procurement], int]:
        if status is not None:
            status = parse_status(status).value
        if supplier_id is not None:
            await require_supplier(session, supplier_id)
        return await list_procurements(
            session, offset=offset, limit=limit, supplier_id=supplier_id, status=status
        )

    async def receive_items(
        self,
        session: AsyncSession,
        *,
        procurement_id: int,
        lines: Sequence[ReceiveLine],
        actor_id: Optional[int] = None,
    ) -> Procurement:
        return await receive_items(
            session,
            procurement_id=procurement_id,
            lines=lines,
            inventory=self._inventory,
            actor_id=actor_id,
        )

    async def update_status(
        self,
        session: AsyncSession,
        *,
        procurement_id: int,
        status: str,
        actor_id: Optional[int] = None,
    ) -> Procurement:
        """
        人工状态流转。
        改为 received 时把每行剩余未收数量一次收完并入库，保证
        received ⇒ 每行 quantity_received == quantity_ordered，且不重复入库。
        """
        target = parse_status(status)
        proc = await get_procurement_with_items(session, procurement_id, for_update=True)
        if proc is None:
            raise ProcurementNotFound(int(procurement_id))

        current = ProcurementStatus(proc.status)
        ensure_manual_transition(current, target)

        if target == ProcurementStatus.RECEIVED:
            remainder = [
                (it, ReceiveLine(item_id=it.id, quantity_received=it.outstanding))
                for it in proc.items
                if it.outstanding > 0
            ]
            if remainder:
                await credit_items(
                    session,
                    procurement=proc,
                    lines=remainder,
                    inventory=self._inventory,
                    actor_id=actor_id,
                )

        proc.status = target.value
        await session.flush()
        log.info("procurement status id=%s %s -> %s", proc.id, current.value, target.value)
        return proc
