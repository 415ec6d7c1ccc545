# shelfledger/models/inventory_level.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from shelfledger.db.base import Base, utcnow


class InventoryLevel(Base):
    """
    库存余额维度 (warehouse_id, variant_id)

    - quantity 为唯一真实库存来源；行不存在 ≡ 0
    - 首次调整时创建，不删除
    - batch_number / expiry_date 为该行最近一次写入的批次元数据
    """

    __tablename__ = "inventory_levels"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)

    warehouse_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    variant_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("product_variants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    quantity: Mapped[Decimal] = mapped_column(
        sa.Numeric(12, 3), nullable=False, default=Decimal("0"), server_default="0"
    )
    batch_number: Mapped[Optional[str]] = mapped_column(sa.String(64), nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(sa.Date, nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True), nullable=True, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("warehouse_id", "variant_id", name="uq_inventory_levels_wh_variant"),
        Index("ix_inventory_levels_expiry", "expiry_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryLevel wh={self.warehouse_id} variant={self.variant_id} "
            f"qty={self.quantity}>"
        )
