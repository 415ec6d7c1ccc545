# shelfledger/schemas/common.py
from __future__ import annotations

from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class _Base(BaseModel):
    """允许 ORM 输出、忽略多余字段"""

    model_config = ConfigDict(from_attributes=True, extra="ignore")


class Page(_Base, Generic[T]):
    """分页列表：page 从 1 开始，total_pages 向上取整"""

    items: List[T]
    page: int
    per_page: int
    total: int
    total_pages: int
