# shelfledger/models/warehouse.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from shelfledger.db.base import Base, utcnow
from shelfledger.models.enums import WarehouseType


class Warehouse(Base):
    """
    仓库主档（门店 / 工厂 / 配送中心）。
    库存核心只做存在性校验，不维护仓库 CRUD。
    """

    __tablename__ = "warehouses"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    type: Mapped[str] = mapped_column(
        sa.String(32),
        nullable=False,
        default=WarehouseType.STORE.value,
        server_default=WarehouseType.STORE.value,
    )
    address: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r} type={self.type}>"
