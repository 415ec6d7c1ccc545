# shelfledger/schemas/sale.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import Field

from shelfledger.schemas.common import _Base


class SaleItemIn(_Base):
    variant_id: Annotated[int, Field(ge=1)]
    quantity: Decimal
    unit_price: Decimal


class SaleCreateIn(_Base):
    warehouse_id: Annotated[int, Field(ge=1)]
    customer_name: Annotated[Optional[str], Field(max_length=255)] = None
    payment_method: str = "cash"
    tax_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    items: List[SaleItemIn]


class SaleItemOut(_Base):
    id: int
    variant_id: int
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal


class SaleOut(_Base):
    id: int
    warehouse_id: int
    customer_name: Optional[str] = None
    total_amount: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    payment_method: str
    processed_by_user_id: int
    created_at: datetime
    items: List[SaleItemOut] = []
