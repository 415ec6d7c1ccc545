# shelfledger/models/procurement.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shelfledger.db.base import Base, utcnow
from shelfledger.models.enums import ProcurementStatus


class Procurement(Base):
    """
    采购单（头）。
    状态流转见 services/procurement_state.py；收货时由行完成度推导 partial / received。
    """

    __tablename__ = "procurements"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    supplier_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    warehouse_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    ordered_by_user_id: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        sa.String(32),
        nullable=False,
        default=ProcurementStatus.PENDING.value,
        server_default=ProcurementStatus.PENDING.value,
        index=True,
    )
    expected_delivery: Mapped[Optional[date]] = mapped_column(sa.Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_received_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    items: Mapped[List["ProcurementItem"]] = relationship(
        "ProcurementItem",
        back_populates="procurement",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProcurementItem.id",
    )

    @property
    def total_cost(self) -> Decimal:
        return sum((it.line_total for it in self.items), Decimal("0"))

    def __repr__(self) -> str:
        return f"<Procurement id={self.id} supplier={self.supplier_id} status={self.status}>"


class ProcurementItem(Base):
    __tablename__ = "procurement_items"
    __table_args__ = (
        sa.CheckConstraint("quantity_ordered > 0", name="ck_procurement_items_ordered_pos"),
        sa.CheckConstraint(
            "quantity_received >= 0 AND quantity_received <= quantity_ordered",
            name="ck_procurement_items_received_range",
        ),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    procurement_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("procurements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variant_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=False
    )
    quantity_ordered: Mapped[Decimal] = mapped_column(sa.Numeric(12, 3), nullable=False)
    quantity_received: Mapped[Decimal] = mapped_column(
        sa.Numeric(12, 3), nullable=False, default=Decimal("0"), server_default="0"
    )
    unit_cost: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)

    procurement: Mapped[Procurement] = relationship("Procurement", back_populates="items")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.quantity_ordered) * Decimal(self.unit_cost)

    @property
    def outstanding(self) -> Decimal:
        return Decimal(self.quantity_ordered) - Decimal(self.quantity_received or 0)

    @property
    def is_complete(self) -> bool:
        return self.outstanding <= 0
