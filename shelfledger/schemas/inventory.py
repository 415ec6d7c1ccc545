# shelfledger/schemas/inventory.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field

from shelfledger.schemas.common import _Base


# ========= 余额 =========
class InventoryLevelOut(_Base):
    id: Optional[int] = None
    warehouse_id: int
    variant_id: int
    quantity: Decimal
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    updated_at: Optional[datetime] = None


# ========= 库存调整（Adjust） =========
class InventoryAdjustIn(_Base):
    """库存调整入参（正数=入库，负数=出库；0 由服务层拒绝）"""

    warehouse_id: Annotated[int, Field(ge=1)]
    variant_id: Annotated[int, Field(ge=1)]
    delta: Annotated[Decimal, Field(description="库存变动量；正数入库，负数出库")]
    ref: Annotated[Optional[str], Field(max_length=128)] = None
    batch_number: Annotated[Optional[str], Field(max_length=64)] = None
    expiry_date: Optional[date] = None
    allow_negative: bool = False


# ========= 仓间调拨 =========
class TransferItemIn(_Base):
    variant_id: Annotated[int, Field(ge=1)]
    quantity: Decimal


class TransferIn(_Base):
    source_warehouse_id: Annotated[int, Field(ge=1)]
    destination_warehouse_id: Annotated[int, Field(ge=1)]
    items: List[TransferItemIn]


class TransferItemOut(_Base):
    id: int
    variant_id: int
    quantity: Decimal


class TransferOut(_Base):
    id: int
    source_warehouse_id: int
    destination_warehouse_id: int
    authorized_by_user_id: int
    status: str
    transferred_at: datetime
    completed_at: Optional[datetime] = None
    items: List[TransferItemOut] = []


# ========= 流水 =========
class MovementOut(_Base):
    id: int
    warehouse_id: int
    variant_id: int
    reason: str
    ref: Optional[str] = None
    delta: Decimal
    after_quantity: Decimal
    actor_id: Optional[int] = None
    occurred_at: datetime
