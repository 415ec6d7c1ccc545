# shelfledger/metrics.py
from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, generate_latest

# 业务指标
MOVEMENTS = Counter(
    "inventory_movements_total",
    "Inventory movements written",
    ["reason"],
)
REJECTIONS = Counter(
    "ledger_rejections_total",
    "Ledger operations rejected with a business error",
    ["code"],
)

router = APIRouter()


@router.get("/metrics")
def metrics() -> Response:
    """单进程直接导出默认 REGISTRY。"""
    return Response(generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
