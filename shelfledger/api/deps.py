# shelfledger/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Header

from shelfledger.api.problem import raise_problem


def get_actor_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> int:
    """
    操作人 id（写接口必填）。
    鉴权不在本服务内：网关校验后透传 X-User-Id。
    """
    raw = (x_user_id or "").strip()
    if not raw.isdigit() or int(raw) <= 0:
        raise_problem(
            status_code=401,
            error_code="missing_actor",
            message="缺少或非法的 X-User-Id",
            context={"header": "X-User-Id"},
        )
    return int(raw)
