# shelfledger/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shelfledger import __version__
from shelfledger.api.routers.inventory import router as inventory_router
from shelfledger.api.routers.procurements import router as procurements_router
from shelfledger.api.routers.sales import router as sales_router
from shelfledger.api.routers.stock_transfer import router as stock_transfer_router
from shelfledger.core.config import get_settings
from shelfledger.core.logging import setup_logging
from shelfledger.db.session import close_engines
from shelfledger.http_problem_handlers import register_exception_handlers
from shelfledger.metrics import router as metrics_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("shelfledger")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info("shelf-ledger starting env=%s", settings.ENV)
    yield
    await close_engines()


app = FastAPI(
    title="Shelf Ledger",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ===========================
#          挂载路由
# ===========================
# 库存台账：余额 / 调整 / 临期 / 低库存 / 流水
app.include_router(inventory_router)
# 仓间调拨
app.include_router(stock_transfer_router)
# 采购单 + 收货
app.include_router(procurements_router)
# POS 销售
app.include_router(sales_router)
# 观测
app.include_router(metrics_router)


@app.get("/")
async def root():
    return {"name": "shelf-ledger", "version": __version__}


@app.get("/ping")
async def ping():
    return {"status": "ok"}


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}
