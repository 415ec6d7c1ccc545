# shelfledger/api/routers/procurements.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.api.deps import get_actor_id
from shelfledger.api.pagination import PageParams, page_params, paginate
from shelfledger.core.tx import tx_commit
from shelfledger.db.session import get_session
from shelfledger.schemas.common import Page
from shelfledger.schemas.procurement import (
    ProcurementCreateIn,
    ProcurementOut,
    ProcurementStatusIn,
    ReceiveIn,
)
from shelfledger.services.procurement_receive import ReceiveLine
from shelfledger.services.procurement_service import ProcurementLine, ProcurementService

router = APIRouter(prefix="/procurements", tags=["procurements"])


@router.post("", response_model=ProcurementOut, status_code=201)
async def create_procurement(
    body: ProcurementCreateIn,
    actor_id: int = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),
):
    async with tx_commit(session):
        proc = await ProcurementService().create(
            session,
            supplier_id=body.supplier_id,
            warehouse_id=body.warehouse_id,
            ordered_by_user_id=actor_id,
            expected_delivery=body.expected_delivery,
            items=[
                ProcurementLine(variant_id=it.variant_id, quantity=it.quantity, unit_cost=it.unit_cost)
                for it in body.items
            ],
        )
    return proc


@router.get("", response_model=Page[ProcurementOut])
async def list_procurements(
    supplier_id: Optional[int] = Query(None, ge=1),
    status: Optional[str] = Query(None, max_length=32),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
):
    rows, total = await ProcurementService().list(
        session,
        offset=params.offset,
        limit=params.limit,
        supplier_id=supplier_id,
        status=status,
    )
    return paginate(rows, total=total, params=params)


@router.get("/supplier/{supplier_id}", response_model=Page[ProcurementOut])
async def list_procurements_by_supplier(
    supplier_id: int,
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
):
    rows, total = await ProcurementService().list(
        session, offset=params.offset, limit=params.limit, supplier_id=supplier_id
    )
    return paginate(rows, total=total, params=params)


@router.get("/{procurement_id}", response_model=ProcurementOut)
async def get_procurement(
    procurement_id: int,
    session: AsyncSession = Depends(get_session),
):
    return await ProcurementService().get(session, procurement_id=procurement_id)


@router.patch("/{procurement_id}/status", response_model=ProcurementOut)
async def update_procurement_status(
    procurement_id: int,
    body: ProcurementStatusIn,
    actor_id: int = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),
):
    """
    人工状态流转（非法流转 409 invalid_transition，未知状态 400 invalid_input）。
    改为 received 时把剩余未收数量一次入库。
    """
    async with tx_commit(session):
        proc = await ProcurementService().update_status(
            session, procurement_id=procurement_id, status=body.status, actor_id=actor_id
        )
    return proc


@router.patch("/{procurement_id}/receive", response_model=ProcurementOut)
async def receive_procurement_items(
    procurement_id: int,
    body: ReceiveIn,
    actor_id: int = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),
):
    """按行收货入库；任何一行超收则整单拒绝（400 invalid_input）。"""
    async with tx_commit(session):
        proc = await ProcurementService().receive_items(
            session,
            procurement_id=procurement_id,
            lines=[
                ReceiveLine(
                    item_id=it.item_id,
                    quantity_received=it.quantity_received,
                    batch_number=it.batch_number,
                    expiry_date=it.expiry_date,
                )
                for it in body.items
            ],
            actor_id=actor_id,
        )
    return proc
