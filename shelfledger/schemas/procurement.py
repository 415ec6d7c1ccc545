# shelfledger/schemas/procurement.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field

from shelfledger.schemas.common import _Base


class ProcurementItemIn(_Base):
    variant_id: Annotated[int, Field(ge=1)]
    quantity: Decimal
    unit_cost: Decimal


class ProcurementCreateIn(_Base):
    supplier_id: Annotated[int, Field(ge=1)]
    warehouse_id: Annotated[int, Field(ge=1)]
    expected_delivery: Optional[date] = None
    items: List[ProcurementItemIn]


class ProcurementItemOut(_Base):
    id: int
    variant_id: int
    quantity_ordered: Decimal
    quantity_received: Decimal
    unit_cost: Decimal
    line_total: Decimal


class ProcurementOut(_Base):
    id: int
    supplier_id: int
    warehouse_id: int
    ordered_by_user_id: int
    status: str
    expected_delivery: Optional[date] = None
    created_at: datetime
    last_received_at: Optional[datetime] = None
    total_cost: Decimal
    items: List[ProcurementItemOut] = []


class ProcurementStatusIn(_Base):
    """状态字符串由服务层解析（未知值 → invalid_input）"""

    status: Annotated[str, Field(min_length=1, max_length=32)]


class ReceiveItemIn(_Base):
    item_id: Annotated[int, Field(ge=1)]
    quantity_received: Decimal
    batch_number: Annotated[Optional[str], Field(max_length=64)] = None
    expiry_date: Optional[date] = None


class ReceiveIn(_Base):
    items: List[ReceiveItemIn]
