# shelfledger/services/sale_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shelfledger.models.enums import MovementReason, PaymentMethod
from shelfledger.models.sale import Sale, SaleItem
from shelfledger.services.errors import (
    InsufficientStock,
    InvalidInput,
    InvalidQuantity,
    SaleNotFound,
)
from shelfledger.services.inventory_service import InventoryService
from shelfledger.services.registry import require_variant, require_warehouse, resolve_stock_variant
from shelfledger.services.stock_levels import to_money, to_quantity

log = logging.getLogger("shelfledger.sale")

CENT = Decimal("0.01")


@dataclass(frozen=True)
class SaleLine:
    variant_id: int
    quantity: Decimal
    unit_price: Decimal


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_sale_totals(
    lines: Sequence[SaleLine], *, tax_amount: Decimal, discount_amount: Decimal
) -> Tuple[List[Decimal], Decimal]:
    """
    返回 (每行 line_total, total_amount)：
    line_total = quantity × unit_price（分位四舍五入）
    total_amount = Σ line_total + tax − discount
    """
    line_totals = [money(Decimal(ln.quantity) * Decimal(ln.unit_price)) for ln in lines]
    total = sum(line_totals, Decimal("0")) + money(tax_amount) - money(discount_amount)
    return line_totals, money(total)


def parse_payment_method(value: str) -> PaymentMethod:
    try:
        return PaymentMethod(str(value).strip().lower())
    except ValueError as e:
        raise InvalidInput(
            f"不支持的支付方式：{value}",
            context={"payment_method": value, "allowed": [m.value for m in PaymentMethod]},
        ) from e


class SaleService:
    """
    POS 结算（整单原子）：

    1) 校验仓库 / 支付方式 / 明细（数量 > 0，单价 / 税 / 折扣 ≥ 0，规格存在）
    2) 包装规格换算到基础规格：扣减量 = 数量 × 换算系数
    3) 按库存规格汇总扣减量并预检余额
    4) 写销售单 + 明细，再按规格 id 升序逐条严格扣减（reason=SALE，ref=SALE-{id}）
    任何一步失败，事务边界整体回滚：没有销售单，也没有扣减。
    """

    def __init__(self, inventory: Optional[InventoryService] = None):
        self._inventory = inventory or InventoryService()

    async def process_sale(
        self,
        session: AsyncSession,
        *,
        warehouse_id: int,
        processed_by_user_id: int,
        items: Sequence[SaleLine],
        payment_method: str = PaymentMethod.CASH.value,
        customer_name: Optional[str] = None,
        tax_amount=Decimal("0"),
        discount_amount=Decimal("0"),
    ) -> Sale:
        await require_warehouse(session, warehouse_id)
        method = parse_payment_method(payment_method)
        if not items:
            raise InvalidInput("销售明细不能为空", context={"field": "items"})

        tax = to_money(tax_amount, field="tax_amount")
        discount = to_money(discount_amount, field="discount_amount")
        if tax < 0 or discount < 0:
            raise InvalidInput(
                "税额 / 折扣不能为负",
                context={"tax_amount": str(tax), "discount_amount": str(discount)},
            )

        clean: List[SaleLine] = []
        deductions: Dict[int, Decimal] = {}
        for idx, line in enumerate(items):
            qty = to_quantity(line.quantity)
            if qty <= 0:
                raise InvalidQuantity(
                    "销售数量必须大于 0",
                    context={"path": f"items[{idx}]", "variant_id": line.variant_id},
                )
            price = to_money(line.unit_price, field="unit_price")
            if price < 0:
                raise InvalidInput(
                    "单价不能为负",
                    context={"path": f"items[{idx}]", "variant_id": line.variant_id},
                )
            variant = await require_variant(session, line.variant_id)
            stock_variant_id, factor = await resolve_stock_variant(session, variant)
            # 换算后的扣减量同样要能原样落库（如 0.001 × 1.5 不行）
            deductions[stock_variant_id] = to_quantity(
                deductions.get(stock_variant_id, Decimal("0")) + qty * factor, field="quantity"
            )
            clean.append(SaleLine(int(line.variant_id), qty, price))

        for vid in sorted(deductions):
            lvl = await self._inventory.get_level(session, warehouse_id=warehouse_id, variant_id=vid)
            available = Decimal(lvl.quantity or 0)
            if available < deductions[vid]:
                raise InsufficientStock(
                    warehouse_id=int(warehouse_id),
                    variant_id=vid,
                    requested=deductions[vid],
                    available=available,
                )

        line_totals, total = compute_sale_totals(clean, tax_amount=tax, discount_amount=discount)
        for lt in line_totals:
            to_money(lt, field="line_total")
        to_money(total, field="total_amount")
        if total < 0:
            raise InvalidInput(
                "折扣超过应付金额",
                context={"total_amount": str(total), "discount_amount": str(discount)},
            )

        sale = Sale(
            warehouse_id=int(warehouse_id),
            customer_name=customer_name,
            payment_method=method.value,
            processed_by_user_id=int(processed_by_user_id),
            tax_amount=money(tax),
            discount_amount=money(discount),
            total_amount=total,
            items=[
                SaleItem(
                    variant_id=ln.variant_id,
                    quantity=ln.quantity,
                    unit_price=money(ln.unit_price),
                    line_total=lt,
                )
                for ln, lt in zip(clean, line_totals)
            ],
        )
        session.add(sale)
        await session.flush()

        ref = f"SALE-{sale.id}"
        for vid in sorted(deductions):
            await self._inventory.adjust(
                session,
                warehouse_id=warehouse_id,
                variant_id=vid,
                delta=-deductions[vid],
                reason=MovementReason.SALE,
                ref=ref,
                actor_id=processed_by_user_id,
            )

        log.info(
            "sale settled id=%s wh=%s lines=%d total=%s method=%s",
            sale.id,
            warehouse_id,
            len(clean),
            total,
            method.value,
        )
        return sale

    async def get(self, session: AsyncSession, *, sale_id: int) -> Sale:
        stmt = (
            select(Sale)
            .options(selectinload(Sale.items))
            .where(Sale.id == int(sale_id))
        )
        sale = (await session.execute(stmt)).scalars().first()
        if sale is None:
            raise SaleNotFound(int(sale_id))
        return sale

    async def list(
        self,
        session: AsyncSession,
        *,
        offset: int = 0,
        limit: int = 20,
        warehouse_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Tuple[List[Sale], int]:
        """end_date 含当天。"""
        conds = []
        if warehouse_id is not None:
            conds.append(Sale.warehouse_id == int(warehouse_id))
        if start_date is not None:
            conds.append(Sale.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
        if end_date is not None:
            end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
            conds.append(Sale.created_at < end)
        if start_date and end_date and start_date > end_date:
            raise InvalidInput(
                "start_date 不能晚于 end_date",
                context={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        total = (
            await session.execute(select(func.count()).select_from(Sale).where(*conds))
        ).scalar_one()
        stmt = (
            select(Sale)
            .options(selectinload(Sale.items))
            .where(*conds)
            .order_by(Sale.id.desc())
            .offset(int(offset))
            .limit(int(limit))
        )
        rows = (await session.execute(stmt)).scalars().all()
        return list(rows), int(total)
