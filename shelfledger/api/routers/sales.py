# shelfledger/api/routers/sales.py
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.api.deps import get_actor_id
from shelfledger.api.pagination import PageParams, page_params, paginate
from shelfledger.core.tx import tx_commit
from shelfledger.db.session import get_session
from shelfledger.schemas.common import Page
from shelfledger.schemas.sale import SaleCreateIn, SaleOut
from shelfledger.services.sale_service import SaleLine, SaleService

router = APIRouter(prefix="/sales", tags=["sales"])


@router.post("", response_model=SaleOut, status_code=201)
async def create_sale(
    body: SaleCreateIn,
    actor_id: int = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),
):
    """POS 结算：销售单 + 库存扣减同事务，任何一行失败整单不落库。"""
    async with tx_commit(session):
        sale = await SaleService().process_sale(
            session,
            warehouse_id=body.warehouse_id,
            processed_by_user_id=actor_id,
            customer_name=body.customer_name,
            payment_method=body.payment_method,
            tax_amount=body.tax_amount,
            discount_amount=body.discount_amount,
            items=[
                SaleLine(variant_id=it.variant_id, quantity=it.quantity, unit_price=it.unit_price)
                for it in body.items
            ],
        )
    return sale


@router.get("", response_model=Page[SaleOut])
async def list_sales(
    warehouse_id: Optional[int] = Query(None, ge=1),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
):
    rows, total = await SaleService().list(
        session,
        offset=params.offset,
        limit=params.limit,
        warehouse_id=warehouse_id,
        start_date=start_date,
        end_date=end_date,
    )
    return paginate(rows, total=total, params=params)


@router.get("/{sale_id}", response_model=SaleOut)
async def get_sale(
    sale_id: int,
    session: AsyncSession = Depends(get_session),
):
    return await SaleService().get(session, sale_id=sale_id)
