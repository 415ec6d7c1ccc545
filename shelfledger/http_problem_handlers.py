# shelfledger/http_problem_handlers.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shelfledger.api.problem import ProblemDetail, make_problem, problem_from_ledger_error
from shelfledger.metrics import REJECTIONS
from shelfledger.services.errors import LedgerError

logger = logging.getLogger("shelfledger.http")


def _new_trace_id() -> str:
    return f"t_{uuid.uuid4().hex[:12]}"


def _where(req: Request) -> Dict[str, Any]:
    return {"path": req.url.path, "method": req.method}


def _reply(body: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=int(body["http_status"]), content=body)


def _validation_details(errors: Iterable[Any]) -> List[ProblemDetail]:
    """pydantic 错误列表 → details；path 用点号拼 loc（body.items.0.quantity）"""
    out: List[ProblemDetail] = []
    for i, e in enumerate(errors):
        if not isinstance(e, dict):
            continue
        loc = ".".join(str(p) for p in e.get("loc", ()))
        out.append(
            {
                "type": "validation",
                "path": loc or f"validation[{i}]",
                "reason": str(e.get("msg") or e.get("type") or "invalid"),
            }
        )
    return out


def _from_http_exception(req: Request, exc: HTTPException) -> Dict[str, Any]:
    """
    HTTPException.detail 两种来源：
    - raise_problem 抛出的 Problem：补 trace_id，把请求定位并进 context
    - 其它 detail（字符串等）：包成 http_error
    """
    where = _where(req)
    detail = exc.detail
    if isinstance(detail, dict) and {"error_code", "message"} <= detail.keys():
        body = dict(detail)
        body.setdefault("http_status", int(exc.status_code))
        body.setdefault("trace_id", _new_trace_id())
        body["context"] = {**where, **(body.get("context") or {})}
        return body

    msg = "请求被拒绝" if detail is None else str(detail)
    return make_problem(
        status_code=int(exc.status_code),
        error_code="http_error",
        message=msg,
        context=where,
        details=[{"type": "state", "reason": msg}],
        trace_id=_new_trace_id(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LedgerError)
    async def _ledger_error(req: Request, exc: LedgerError):
        trace_id = _new_trace_id()
        REJECTIONS.labels(code=exc.code).inc()
        logger.warning(
            "LEDGER_REJECT[%s] %s %s code=%s msg=%s",
            trace_id,
            req.method,
            req.url.path,
            exc.code,
            exc.message,
        )
        return _reply(problem_from_ledger_error(exc, request_context=_where(req), trace_id=trace_id))

    @app.exception_handler(RequestValidationError)
    async def _bad_request(req: Request, exc: RequestValidationError):
        return _reply(
            make_problem(
                status_code=422,
                error_code="request_validation_error",
                message="请求参数不合法",
                context=_where(req),
                details=_validation_details(exc.errors()),
                trace_id=_new_trace_id(),
            )
        )

    @app.exception_handler(HTTPException)
    async def _http_error(req: Request, exc: HTTPException):
        return _reply(_from_http_exception(req, exc))

    @app.exception_handler(Exception)
    async def _unhandled(req: Request, exc: Exception):
        trace_id = _new_trace_id()
        logger.exception("UNHANDLED_EXC[%s]: %s", trace_id, exc)
        return _reply(
            make_problem(
                status_code=500,
                error_code="internal_error",
                message="系统异常，请稍后重试",
                context=_where(req),
                trace_id=trace_id,
            )
        )
