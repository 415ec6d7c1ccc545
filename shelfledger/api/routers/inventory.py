# shelfledger/api/routers/inventory.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.api.deps import get_actor_id
from shelfledger.api.pagination import PageParams, page_params, paginate
from shelfledger.core.tx import tx_commit
from shelfledger.db.session import get_session
from shelfledger.schemas.common import Page
from shelfledger.schemas.inventory import InventoryAdjustIn, InventoryLevelOut, MovementOut
from shelfledger.services.inventory_service import InventoryService

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("", response_model=Page[InventoryLevelOut])
async def list_levels(
    warehouse_id: Optional[int] = Query(None, ge=1),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
):
    rows, total = await InventoryService().list_levels(
        session, offset=params.offset, limit=params.limit, warehouse_id=warehouse_id
    )
    return paginate(rows, total=total, params=params)


@router.get("/warehouse/{warehouse_id}", response_model=Page[InventoryLevelOut])
async def list_levels_by_warehouse(
    warehouse_id: int,
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
):
    rows, total = await InventoryService().list_levels(
        session, offset=params.offset, limit=params.limit, warehouse_id=warehouse_id
    )
    return paginate(rows, total=total, params=params)


@router.get("/variant/{variant_id}", response_model=List[InventoryLevelOut])
async def list_levels_by_variant(
    variant_id: int,
    session: AsyncSession = Depends(get_session),
):
    return await InventoryService().list_levels_by_variant(session, variant_id=variant_id)


@router.get("/level", response_model=InventoryLevelOut)
async def get_level(
    warehouse_id: int = Query(..., ge=1),
    variant_id: int = Query(..., ge=1),
    session: AsyncSession = Depends(get_session),
):
    """行不存在时返回 quantity=0，而不是 404。"""
    return await InventoryService().get_level(
        session, warehouse_id=warehouse_id, variant_id=variant_id
    )


@router.post("/adjust", response_model=InventoryLevelOut)
async def adjust_inventory(
    body: InventoryAdjustIn,
    actor_id: int = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),
):
    """
    库存调整：
    - 正数入库（行不存在则创建），负数出库（余额不足 409 insufficient_stock）
    - allow_negative 仅用于人工纠偏
    """
    async with tx_commit(session):
        level = await InventoryService().adjust(
            session,
            warehouse_id=body.warehouse_id,
            variant_id=body.variant_id,
            delta=body.delta,
            ref=body.ref,
            batch_number=body.batch_number,
            expiry_date=body.expiry_date,
            allow_negative=body.allow_negative,
            actor_id=actor_id,
        )
    return level


@router.get("/expiring", response_model=List[InventoryLevelOut])
async def expiring_stock(
    days: Optional[int] = Query(None, ge=0, le=3650),
    session: AsyncSession = Depends(get_session),
):
    return await InventoryService().get_expiring_stock(session, days=days)


@router.get("/low-stock", response_model=List[InventoryLevelOut])
async def low_stock(
    threshold: Optional[Decimal] = Query(None),
    session: AsyncSession = Depends(get_session),
):
    return await InventoryService().get_low_stock(session, threshold=threshold)


@router.get("/movements", response_model=List[MovementOut])
async def list_movements(
    warehouse_id: Optional[int] = Query(None, ge=1),
    variant_id: Optional[int] = Query(None, ge=1),
    ref: Optional[str] = Query(None, max_length=128),
    limit: int = Query(100, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
):
    return await InventoryService().list_movements(
        session, warehouse_id=warehouse_id, variant_id=variant_id, ref=ref, limit=limit
    )
