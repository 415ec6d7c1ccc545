# shelfledger/services/errors.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional


class LedgerError(Exception):
    """
    库存核心的业务错误基类。

    - code：对外 error_code（Problem 形状）
    - http_status：HTTP 层映射
    - context：定位信息（仓库 / 规格 / 单号 / 数量）
    - commit_on_error：为 True 时事务边界先提交再抛出（见 core/tx.py）
    """

    code = "ledger_error"
    http_status = 400
    commit_on_error = False

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})


class _NotFound(LedgerError):
    http_status = 404
    entity = "entity"

    def __init__(self, entity_id: int, message: Optional[str] = None):
        super().__init__(
            message or f"{self.entity} {entity_id} 不存在",
            context={f"{self.entity}_id": entity_id},
        )
        self.entity_id = entity_id


class WarehouseNotFound(_NotFound):
    code = "warehouse_not_found"
    entity = "warehouse"


class VariantNotFound(_NotFound):
    code = "variant_not_found"
    entity = "variant"


class SupplierNotFound(_NotFound):
    code = "supplier_not_found"
    entity = "supplier"


class ProcurementNotFound(_NotFound):
    code = "procurement_not_found"
    entity = "procurement"


class TransferNotFound(_NotFound):
    code = "transfer_not_found"
    entity = "transfer"


class SaleNotFound(_NotFound):
    code = "sale_not_found"
    entity = "sale"


class SameWarehouse(LedgerError):
    """调拨源仓与目的仓相同"""

    code = "same_warehouse"
    http_status = 400

    def __init__(self, warehouse_id: int):
        super().__init__(
            "调拨源仓与目的仓不能相同",
            context={"warehouse_id": warehouse_id},
        )


class InvalidQuantity(LedgerError):
    """数量为 0 / 负数 / 非有限值，或超出列的精度与范围"""

    code = "invalid_quantity"
    http_status = 400


class InvalidInput(LedgerError):
    code = "invalid_input"
    http_status = 400


class InvalidTransition(LedgerError):
    """采购单状态流转不被允许"""

    code = "invalid_transition"
    http_status = 409

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        super().__init__(
            message or f"采购单状态不允许从 {current} 变更为 {target}",
            context={"current_status": current, "target_status": target},
        )


class InsufficientStock(LedgerError):
    """
    扣减后库存将为负。
    带 transfer_id 时表示调拨在应用阶段失败，需要保留 failed 调拨单。
    """

    code = "insufficient_stock"
    http_status = 409

    def __init__(
        self,
        *,
        warehouse_id: int,
        variant_id: int,
        requested: Decimal,
        available: Decimal,
        transfer_id: Optional[int] = None,
    ):
        ctx: Dict[str, Any] = {
            "warehouse_id": warehouse_id,
            "variant_id": variant_id,
            "requested": str(requested),
            "available": str(available),
        }
        if transfer_id is not None:
            ctx["transfer_id"] = transfer_id
        super().__init__(
            f"库存不足：仓库 {warehouse_id} 规格 {variant_id} 需要 {requested}，可用 {available}",
            context=ctx,
        )
        self.warehouse_id = warehouse_id
        self.variant_id = variant_id
        self.requested = requested
        self.available = available
        self.transfer_id = transfer_id
        self.commit_on_error = transfer_id is not None
