# shelfledger/models/inventory_transfer.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shelfledger.db.base import Base, utcnow
from shelfledger.models.enums import TransferStatus


class InventoryTransfer(Base):
    """
    仓间调拨单（头）。
    - source_warehouse_id ≠ destination_warehouse_id（DB check 兜底）
    - status: pending → completed / failed
    """

    __tablename__ = "inventory_transfers"
    __table_args__ = (
        sa.CheckConstraint(
            "source_warehouse_id <> destination_warehouse_id",
            name="ck_inventory_transfers_distinct_wh",
        ),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    source_warehouse_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    destination_warehouse_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    authorized_by_user_id: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(32),
        nullable=False,
        default=TransferStatus.PENDING.value,
        server_default=TransferStatus.PENDING.value,
    )
    transferred_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    items: Mapped[List["InventoryTransferItem"]] = relationship(
        "InventoryTransferItem",
        back_populates="transfer",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InventoryTransferItem.id",
    )

    def __repr__(self) -> str:
        return (
            f"<InventoryTransfer id={self.id} {self.source_warehouse_id}->"
            f"{self.destination_warehouse_id} status={self.status}>"
        )


class InventoryTransferItem(Base):
    __tablename__ = "inventory_transfer_items"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    transfer_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("inventory_transfers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(sa.Numeric(12, 3), nullable=False)

    transfer: Mapped[InventoryTransfer] = relationship("InventoryTransfer", back_populates="items")
