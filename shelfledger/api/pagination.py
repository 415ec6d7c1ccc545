# shelfledger/api/pagination.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Sequence

from fastapi import Query

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page


def page_params(
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
) -> PageParams:
    return PageParams(page=page, per_page=per_page)


def total_pages(total: int, per_page: int) -> int:
    if total <= 0 or per_page <= 0:
        return 0
    return (total + per_page - 1) // per_page


def paginate(items: Sequence[Any], *, total: int, params: PageParams) -> Dict[str, Any]:
    return {
        "items": list(items),
        "page": params.page,
        "per_page": params.per_page,
        "total": int(total),
        "total_pages": total_pages(int(total), params.per_page),
    }
