# shelfledger/models/enums.py
from __future__ import annotations

from enum import StrEnum


class WarehouseType(StrEnum):
    STORE = "store"
    FACTORY = "factory"
    DISTRIBUTION_CENTER = "distribution_center"


class TransferStatus(StrEnum):
    """
    仓间调拨状态：
    - pending    已落单，尚未应用库存
    - completed  所有行已从源仓扣减并入目的仓
    - failed     应用阶段被拒（并发抽空源仓），库存未变，仅保留审计记录
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ProcurementStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    ORDERED = "ordered"
    PARTIAL = "partial"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class PaymentMethod(StrEnum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    CREDIT = "credit"
    OTHER = "other"


class MovementReason(StrEnum):
    """
    库存流水 reason（inventory_movements.reason）：

    - ADJUSTMENT    手工调整 / 盘点纠偏
    - TRANSFER_OUT  调拨出（源仓）
    - TRANSFER_IN   调拨入（目的仓）
    - RECEIPT       采购收货
    - SALE          POS 销售扣减
    """

    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"
    RECEIPT = "RECEIPT"
    SALE = "SALE"
