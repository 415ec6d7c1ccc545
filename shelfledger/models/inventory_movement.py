# shelfledger/models/inventory_movement.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column

from shelfledger.db.base import Base, utcnow


class InventoryMovement(Base):
    """
    库存流水：每一次实际落地的增减一行，与余额变更同事务写入。
    after_quantity 为该行写入后的余额快照。
    """

    __tablename__ = "inventory_movements"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    warehouse_id: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    variant_id: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    reason: Mapped[str] = mapped_column(sa.String(32), nullable=False)
    ref: Mapped[Optional[str]] = mapped_column(sa.String(128), nullable=True)
    delta: Mapped[Decimal] = mapped_column(sa.Numeric(12, 3), nullable=False)
    after_quantity: Mapped[Decimal] = mapped_column(sa.Numeric(12, 3), nullable=False)
    actor_id: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_inventory_movements_wh_variant", "warehouse_id", "variant_id"),
        Index("ix_inventory_movements_ref", "ref"),
    )
