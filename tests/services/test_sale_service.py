# tests/services/test_sale_service.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from shelfledger.core.tx import tx_commit
from shelfledger.models.enums import MovementReason
from shelfledger.services.errors import (
    InsufficientStock,
    InvalidInput,
    InvalidQuantity,
    SaleNotFound,
    VariantNotFound,
    WarehouseNotFound,
)
from shelfledger.services.inventory_service import InventoryService
from shelfledger.services.sale_service import SaleLine, SaleService
from tests.helpers.inventory import (
    ACTOR,
    RICE,
    RICE_6PACK,
    SOAP,
    WH_A,
    WH_B,
    count_rows,
    qty_of,
    stock_up,
)

pytestmark = pytest.mark.asyncio


def _lines(*specs):
    return [SaleLine(variant_id=v, quantity=Decimal(q), unit_price=Decimal(p)) for v, q, p in specs]


async def _sell(session, *specs, svc=None, wh=WH_A, **kw):
    async with tx_commit(session):
        return await (svc or SaleService()).process_sale(
            session,
            warehouse_id=wh,
            processed_by_user_id=ACTOR,
            items=_lines(*specs),
            **kw,
        )


async def test_sale_deducts_stock_and_records_totals(session, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "10")
    await stock_up(async_session_maker, WH_A, RICE, "5")

    sale = await _sell(
        session,
        (SOAP, "3", "12.50"),
        (RICE, "1.5", "49.99"),
        payment_method="card",
        customer_name="Walk-in",
        tax_amount=Decimal("5.00"),
        discount_amount=Decimal("2.50"),
    )

    # 37.50 + 74.985→74.99 + 5.00 − 2.50
    assert [it.line_total for it in sale.items] == [Decimal("37.50"), Decimal("74.99")]
    assert sale.total_amount == Decimal("114.99")
    assert sale.payment_method == "card"
    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("7")
    assert await qty_of(async_session_maker, WH_A, RICE) == Decimal("3.5")
    assert (
        await count_rows(
            async_session_maker,
            "inventory_movements",
            "reason = :r AND ref = :ref",
            r=MovementReason.SALE.value,
            ref=f"SALE-{sale.id}",
        )
        == 2
    )


async def test_pack_variant_deducts_base_variant(session, async_session_maker):
    """6 包装卖 2 件 → 基础规格扣 12；包装规格自身不动"""
    await stock_up(async_session_maker, WH_A, RICE, "20")

    await _sell(session, (RICE_6PACK, "2", "290"))

    assert await qty_of(async_session_maker, WH_A, RICE) == Decimal("8")
    assert await qty_of(async_session_maker, WH_A, RICE_6PACK) is None


async def test_pack_and_base_lines_are_checked_together(session, async_session_maker):
    """基础 5 + 包装 1×6 = 11 > 10 → 整单拒绝"""
    await stock_up(async_session_maker, WH_A, RICE, "10")

    with pytest.raises(InsufficientStock) as ei:
        await _sell(session, (RICE, "5", "50"), (RICE_6PACK, "1", "290"))
    assert ei.value.variant_id == RICE
    assert ei.value.requested == Decimal("11")

    assert await qty_of(async_session_maker, WH_A, RICE) == Decimal("10")
    assert await count_rows(async_session_maker, "sales") == 0


async def test_insufficient_stock_leaves_no_sale(session, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "10")

    with pytest.raises(InsufficientStock):
        await _sell(session, (SOAP, "1", "1"), (RICE, "1", "1"))

    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("10")
    assert await count_rows(async_session_maker, "sales") == 0
    assert await count_rows(async_session_maker, "sale_items") == 0


class _FailingInventory(InventoryService):
    """第 N 次 adjust 时抛出非业务异常，模拟扣减中途故障"""

    def __init__(self, fail_on: int):
        self.fail_on = fail_on
        self.calls = 0

    async def adjust(self, session, **kwargs):
        self.calls += 1
        if self.calls == self.fail_on:
            raise RuntimeError("disk on fire")
        return await super().adjust(session, **kwargs)


async def test_failure_mid_deduction_rolls_back_everything(session, async_session_maker):
    """第一条扣减已执行、第二条失败 → 没有销售单，余额全部还原，没有 SALE 流水"""
    await stock_up(async_session_maker, WH_A, SOAP, "10")
    await stock_up(async_session_maker, WH_A, RICE, "10")

    inv = _FailingInventory(fail_on=2)
    with pytest.raises(RuntimeError):
        await _sell(session, (SOAP, "2", "1"), (RICE, "3", "1"), svc=SaleService(inventory=inv))
    assert inv.calls == 2

    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("10")
    assert await qty_of(async_session_maker, WH_A, RICE) == Decimal("10")
    assert await count_rows(async_session_maker, "sales") == 0
    assert await count_rows(async_session_maker, "sale_items") == 0
    assert (
        await count_rows(
            async_session_maker, "inventory_movements", "reason = :r", r=MovementReason.SALE.value
        )
        == 0
    )


async def test_sale_input_validation(session, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "10")

    with pytest.raises(InvalidInput):
        await _sell(session, (SOAP, "1", "1"), payment_method="barter")
    with pytest.raises(InvalidInput):
        await _sell(session)
    with pytest.raises(InvalidQuantity):
        await _sell(session, (SOAP, "0", "1"))
    with pytest.raises(InvalidInput):
        await _sell(session, (SOAP, "1", "-1"))
    with pytest.raises(InvalidInput):
        await _sell(session, (SOAP, "1", "1"), tax_amount=Decimal("-0.01"))
    with pytest.raises(InvalidInput):
        await _sell(session, (SOAP, "1", "1.00"), discount_amount=Decimal("1.01"))
    # 超出列精度：数量 3 位、金额 2 位
    with pytest.raises(InvalidQuantity):
        await _sell(session, (SOAP, "0.0001", "1"))
    with pytest.raises(InvalidInput):
        await _sell(session, (SOAP, "1", "0.005"))
    with pytest.raises(InvalidInput):
        await _sell(session, (SOAP, "1", "1"), tax_amount=Decimal("0.001"))
    with pytest.raises(InvalidInput):
        await _sell(session, (SOAP, "9", "9999999999.99"))
    with pytest.raises(WarehouseNotFound):
        await _sell(session, (SOAP, "1", "1"), wh=404)
    with pytest.raises(VariantNotFound):
        await _sell(session, (999, "1", "1"))

    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("10")
    assert await count_rows(async_session_maker, "sales") == 0


async def test_get_and_list_sales(session, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "10")
    await stock_up(async_session_maker, WH_B, SOAP, "10")
    first = await _sell(session, (SOAP, "1", "2"))
    second = await _sell(session, (SOAP, "1", "3"), wh=WH_B)

    svc = SaleService()
    # 与 list 的日期边界一致，按 UTC 取当天
    today = datetime.now(timezone.utc).date()
    async with tx_commit(session):
        got = await svc.get(session, sale_id=first.id)
        rows, total = await svc.list(session)
        by_wh, wh_total = await svc.list(session, warehouse_id=WH_B)
        ranged, ranged_total = await svc.list(
            session, start_date=today - timedelta(days=1), end_date=today + timedelta(days=1)
        )
        future, future_total = await svc.list(session, start_date=today + timedelta(days=2))

    assert got.total_amount == Decimal("2.00")
    assert [r.id for r in rows] == [second.id, first.id]
    assert total == 2
    assert wh_total == 1 and by_wh[0].id == second.id
    assert ranged_total == 2
    assert future_total == 0 and future == []

    with pytest.raises(SaleNotFound):
        async with tx_commit(session):
            await svc.get(session, sale_id=31337)
    with pytest.raises(InvalidInput):
        async with tx_commit(session):
            await svc.list(session, start_date=today, end_date=today - timedelta(days=1))
