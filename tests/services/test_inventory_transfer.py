# tests/services/test_inventory_transfer.py
from decimal import Decimal

import pytest

from shelfledger.core.tx import tx_commit
from shelfledger.models.enums import TransferStatus
from shelfledger.services import inventory_transfer as transfer_mod
from shelfledger.services.errors import (
    InsufficientStock,
    InvalidInput,
    InvalidQuantity,
    SameWarehouse,
    TransferNotFound,
    VariantNotFound,
    WarehouseNotFound,
)
from shelfledger.services.inventory_service import InventoryService
from shelfledger.services.inventory_transfer import TransferLine
from tests.helpers.inventory import (
    ACTOR,
    RICE,
    SOAP,
    WH_A,
    WH_B,
    count_rows,
    qty_of,
    stock_up,
)

pytestmark = pytest.mark.asyncio


async def _transfer(session, *lines, src=WH_A, dst=WH_B):
    async with tx_commit(session):
        return await InventoryService().transfer(
            session,
            source_warehouse_id=src,
            destination_warehouse_id=dst,
            authorized_by_user_id=ACTOR,
            items=[TransferLine(variant_id=v, quantity=Decimal(q)) for v, q in lines],
        )


async def test_transfer_moves_stock_and_completes(session, async_session_maker):
    """源仓 100，调 30 → 源 70 / 目的 30，状态 completed"""
    await stock_up(async_session_maker, WH_A, SOAP, "100")

    t = await _transfer(session, (SOAP, "30"))

    assert t.status == TransferStatus.COMPLETED.value
    assert t.completed_at is not None
    assert [(i.variant_id, i.quantity) for i in t.items] == [(SOAP, Decimal("30"))]
    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("70")
    assert await qty_of(async_session_maker, WH_B, SOAP) == Decimal("30")

    ref = f"TRF-{t.id}"
    assert await count_rows(async_session_maker, "inventory_movements", "ref = :r", r=ref) == 2


async def test_transfer_over_available_is_rejected_without_mutation(session, async_session_maker):
    """源仓 70，调 200 → InsufficientStock，余额不变，不留调拨单"""
    await stock_up(async_session_maker, WH_A, SOAP, "70")

    with pytest.raises(InsufficientStock) as ei:
        await _transfer(session, (SOAP, "200"))
    assert ei.value.transfer_id is None
    assert ei.value.available == Decimal("70")

    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("70")
    assert await qty_of(async_session_maker, WH_B, SOAP) is None
    assert await count_rows(async_session_maker, "inventory_transfers") == 0


async def test_transfer_sub_unit_quantity_rejected(session, async_session_maker):
    """0.0005 落库会被四舍五入：两边都不动，不留调拨单"""
    await stock_up(async_session_maker, WH_A, SOAP, "1")

    with pytest.raises(InvalidQuantity):
        await _transfer(session, (SOAP, "0.0005"))

    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("1")
    assert await qty_of(async_session_maker, WH_B, SOAP) is None
    assert await count_rows(async_session_maker, "inventory_transfers") == 0


async def test_transfer_same_warehouse_rejected_first(session, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "10")

    # 同仓优先于其它校验（明细里数量非法也一样）
    with pytest.raises(SameWarehouse):
        await _transfer(session, (SOAP, "0"), src=WH_A, dst=WH_A)

    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("10")
    assert await count_rows(async_session_maker, "inventory_transfers") == 0


async def test_transfer_conserves_total_across_lines(session, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "50")
    await stock_up(async_session_maker, WH_A, RICE, "8.5")
    await stock_up(async_session_maker, WH_B, RICE, "1")

    await _transfer(session, (RICE, "2.25"), (SOAP, "20"), (RICE, "0.25"))

    assert await qty_of(async_session_maker, WH_A, SOAP) + await qty_of(
        async_session_maker, WH_B, SOAP
    ) == Decimal("50")
    assert await qty_of(async_session_maker, WH_A, RICE) == Decimal("6")
    assert await qty_of(async_session_maker, WH_B, RICE) == Decimal("3.5")


async def test_duplicate_variant_lines_are_checked_in_aggregate(session, async_session_maker):
    """两行各 6，总 12 > 10 → 整单拒绝"""
    await stock_up(async_session_maker, WH_A, SOAP, "10")

    with pytest.raises(InsufficientStock) as ei:
        await _transfer(session, (SOAP, "6"), (SOAP, "6"))
    assert ei.value.requested == Decimal("12")
    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("10")


@pytest.mark.parametrize("qty", ["0", "-5"])
async def test_transfer_non_positive_quantity(session, qty):
    with pytest.raises(InvalidQuantity):
        await _transfer(session, (SOAP, qty))


async def test_transfer_empty_items(session):
    with pytest.raises(InvalidInput):
        await _transfer(session)


async def test_transfer_unknown_references(session):
    with pytest.raises(WarehouseNotFound):
        await _transfer(session, (SOAP, "1"), dst=999)
    with pytest.raises(VariantNotFound):
        await _transfer(session, (999, "1"))


async def test_apply_time_shortage_keeps_failed_record(
    session, async_session_maker, monkeypatch
):
    """
    预检通过、应用时被并发抽空：
    - 保存点回滚，两边余额都不变
    - 调拨单以 failed 留档，错误里带 transfer_id
    """
    await stock_up(async_session_maker, WH_A, SOAP, "5")

    async def _stale_read(*_args, **_kwargs):
        return Decimal("1000")

    monkeypatch.setattr(transfer_mod, "read_quantity", _stale_read)

    with pytest.raises(InsufficientStock) as ei:
        await _transfer(session, (SOAP, "5"), (RICE, "3"))
    tid = ei.value.transfer_id
    assert tid is not None
    assert ei.value.commit_on_error is True

    assert await qty_of(async_session_maker, WH_A, SOAP) == Decimal("5")
    assert await qty_of(async_session_maker, WH_B, SOAP) is None
    assert (
        await count_rows(async_session_maker, "inventory_movements", "ref = :r", r=f"TRF-{tid}")
        == 0
    )

    async with async_session_maker() as s:
        t = await InventoryService().get_transfer(s, transfer_id=tid)
        assert t.status == TransferStatus.FAILED.value
        assert t.completed_at is None
        assert len(t.items) == 2


async def test_get_and_list_transfers(session, async_session_maker):
    await stock_up(async_session_maker, WH_A, SOAP, "10")
    first = await _transfer(session, (SOAP, "1"))
    second = await _transfer(session, (SOAP, "2"))

    svc = InventoryService()
    async with tx_commit(session):
        rows, total = await svc.list_transfers(session, offset=0, limit=1)
        got = await svc.get_transfer(session, transfer_id=first.id)
    assert total == 2
    assert [r.id for r in rows] == [second.id]
    assert got.items[0].quantity == Decimal("1")

    with pytest.raises(TransferNotFound):
        async with tx_commit(session):
            await svc.get_transfer(session, transfer_id=12345)
