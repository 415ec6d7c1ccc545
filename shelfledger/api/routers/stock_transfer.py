# shelfledger/api/routers/stock_transfer.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.api.deps import get_actor_id
from shelfledger.api.pagination import PageParams, page_params, paginate
from shelfledger.core.tx import tx_commit
from shelfledger.db.session import get_session
from shelfledger.schemas.common import Page
from shelfledger.schemas.inventory import TransferIn, TransferOut
from shelfledger.services.inventory_service import InventoryService
from shelfledger.services.inventory_transfer import TransferLine

router = APIRouter(prefix="/inventory", tags=["inventory-transfer"])


@router.post("/transfer", response_model=TransferOut, status_code=201)
async def transfer_stock(
    body: TransferIn,
    actor_id: int = Depends(get_actor_id),
    session: AsyncSession = Depends(get_session),
):
    """
    仓间调拨（整单原子）：
    - 同仓 400 same_warehouse；余额不足 409 insufficient_stock
    - 应用阶段被并发抽空时保留 failed 调拨单，context.transfer_id 指向它
    """
    async with tx_commit(session):
        transfer = await InventoryService().transfer(
            session,
            source_warehouse_id=body.source_warehouse_id,
            destination_warehouse_id=body.destination_warehouse_id,
            authorized_by_user_id=actor_id,
            items=[TransferLine(variant_id=it.variant_id, quantity=it.quantity) for it in body.items],
        )
    return transfer


@router.get("/transfers", response_model=Page[TransferOut])
async def list_transfers(
    params: PageParams = Depends(page_params),
    session: AsyncSession = Depends(get_session),
):
    rows, total = await InventoryService().list_transfers(
        session, offset=params.offset, limit=params.limit
    )
    return paginate(rows, total=total, params=params)


@router.get("/transfers/{transfer_id}", response_model=TransferOut)
async def get_transfer(
    transfer_id: int,
    session: AsyncSession = Depends(get_session),
):
    return await InventoryService().get_transfer(session, transfer_id=transfer_id)
