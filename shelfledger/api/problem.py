# shelfledger/api/problem.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, TypedDict

from fastapi import HTTPException

from shelfledger.services.errors import InsufficientStock, LedgerError


class ProblemDetail(TypedDict, total=False):
    type: str  # validation|shortage|state
    path: str  # e.g. items[2]
    reason: str
    # shortage 行：库存不足时的定位
    warehouse_id: int
    variant_id: int
    requested: str
    available: str


@dataclass(frozen=True)
class Problem:
    """
    统一错误体：
    {error_code, message, http_status, context?, details?, trace_id?}
    """

    error_code: str
    message: str
    http_status: int
    context: Optional[Dict[str, Any]] = None
    details: Optional[List[ProblemDetail]] = None
    trace_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
            "http_status": int(self.http_status),
        }
        if self.context:
            out["context"] = self.context
        if self.details:
            out["details"] = self.details
        if self.trace_id:
            out["trace_id"] = self.trace_id
        return out


def make_problem(
    *,
    status_code: int,
    error_code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    details: Optional[Sequence[ProblemDetail]] = None,
    trace_id: Optional[str] = None,
) -> Dict[str, Any]:
    return Problem(
        error_code=str(error_code),
        message=str(message),
        http_status=int(status_code),
        context=context,
        details=list(details) if details else None,
        trace_id=trace_id,
    ).to_dict()


def problem_from_ledger_error(
    exc: LedgerError,
    *,
    request_context: Optional[Dict[str, Any]] = None,
    trace_id: Optional[str] = None,
) -> Dict[str, Any]:
    """业务错误 → Problem；context = 请求定位 + 错误自带的定位信息。"""
    ctx: Dict[str, Any] = dict(request_context or {})
    ctx.update(exc.context)

    details: Optional[List[ProblemDetail]] = None
    if isinstance(exc, InsufficientStock):
        details = [
            {
                "type": "shortage",
                "reason": exc.message,
                "warehouse_id": int(exc.warehouse_id),
                "variant_id": int(exc.variant_id),
                "requested": str(exc.requested),
                "available": str(exc.available),
            }
        ]
    return make_problem(
        status_code=exc.http_status,
        error_code=exc.code,
        message=exc.message,
        context=ctx,
        details=details,
        trace_id=trace_id,
    )


def raise_problem(
    *,
    status_code: int,
    error_code: str,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    details: Optional[Sequence[ProblemDetail]] = None,
) -> None:
    """API 层自己的拒绝（非业务错误，例如缺少操作人）走 HTTPException。"""
    raise HTTPException(
        status_code=int(status_code),
        detail=make_problem(
            status_code=int(status_code),
            error_code=error_code,
            message=message,
            context=context,
            details=details,
        ),
    )
