# shelfledger/models/catalog.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shelfledger.db.base import Base


class ProductFamily(Base):
    """商品族：同一商品的不同包装规格归在一个族下。"""

    __tablename__ = "product_families"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)

    variants: Mapped[List["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="family",
        lazy="selectin",
        order_by="ProductVariant.id",
    )


class ProductVariant(Base):
    """
    可售规格（库存维度之一）。

    - conversion_factor：1 表示基础单位；N>1 表示一个包装含 N 个基础单位
      （销售包装规格时扣减同族基础规格的库存）
    """

    __tablename__ = "product_variants"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    family_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("product_families.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    sku: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True)
    unit: Mapped[str] = mapped_column(sa.String(16), nullable=False, default="pcs", server_default="pcs")

    cost_price: Mapped[Decimal] = mapped_column(
        sa.Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0"
    )
    selling_price: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2), nullable=True)
    conversion_factor: Mapped[Decimal] = mapped_column(
        sa.Numeric(12, 3), nullable=False, default=Decimal("1"), server_default="1"
    )

    family: Mapped[ProductFamily] = relationship("ProductFamily", back_populates="variants")

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} sku={self.sku!r} factor={self.conversion_factor}>"
