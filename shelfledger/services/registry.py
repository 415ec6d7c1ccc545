# shelfledger/services/registry.py
"""
仓库 / 规格 / 供应商 只读查询（库存核心只依赖存在性与基础规格解析）。
"""
from __future__ import annotations

from decimal import Decimal
from typing import Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.models.catalog import ProductVariant
from shelfledger.models.supplier import Supplier
from shelfledger.models.warehouse import Warehouse
from shelfledger.services.errors import SupplierNotFound, VariantNotFound, WarehouseNotFound


async def warehouse_exists(session: AsyncSession, warehouse_id: int) -> bool:
    row = await session.execute(select(Warehouse.id).where(Warehouse.id == int(warehouse_id)))
    return row.first() is not None


async def variant_exists(session: AsyncSession, variant_id: int) -> bool:
    row = await session.execute(
        select(ProductVariant.id).where(ProductVariant.id == int(variant_id))
    )
    return row.first() is not None


async def require_warehouse(session: AsyncSession, warehouse_id: int) -> Warehouse:
    wh = await session.get(Warehouse, int(warehouse_id))
    if wh is None:
        raise WarehouseNotFound(int(warehouse_id))
    return wh


async def require_variant(session: AsyncSession, variant_id: int) -> ProductVariant:
    v = await session.get(ProductVariant, int(variant_id))
    if v is None:
        raise VariantNotFound(int(variant_id))
    return v


async def require_supplier(session: AsyncSession, supplier_id: int) -> Supplier:
    s = await session.get(Supplier, int(supplier_id))
    if s is None:
        raise SupplierNotFound(int(supplier_id))
    return s


async def resolve_stock_variant(
    session: AsyncSession, variant: ProductVariant
) -> Tuple[int, Decimal]:
    """
    返回 (实际扣库存的规格 id, 换算系数)：
    - 系数为 1 的规格自身即库存单位
    - 包装规格扣同族基础规格（系数 = 1，取 id 最小者）
    - 族内没有基础规格时扣自身，数量仍按系数放大
    """
    factor = Decimal(variant.conversion_factor or 1)
    if factor <= 0:
        factor = Decimal("1")
    if factor == 1:
        return int(variant.id), factor

    stmt = (
        select(ProductVariant.id)
        .where(ProductVariant.family_id == variant.family_id)
        .where(ProductVariant.conversion_factor == 1)
        .order_by(ProductVariant.id)
        .limit(1)
    )
    base_id = (await session.execute(stmt)).scalar_one_or_none()
    return int(base_id if base_id is not None else variant.id), factor
