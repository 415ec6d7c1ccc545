# shelfledger/services/procurement_state.py
from __future__ import annotations

from typing import Dict, FrozenSet

from shelfledger.models.enums import ProcurementStatus
from shelfledger.services.errors import InvalidInput, InvalidTransition

S = ProcurementStatus

# 采购单状态机；received / cancelled 为终态
ALLOWED_TRANSITIONS: Dict[ProcurementStatus, FrozenSet[ProcurementStatus]] = {
    S.PENDING: frozenset({S.APPROVED, S.CANCELLED}),
    S.APPROVED: frozenset({S.ORDERED, S.CANCELLED}),
    S.ORDERED: frozenset({S.PARTIAL, S.RECEIVED, S.CANCELLED}),
    S.PARTIAL: frozenset({S.RECEIVED, S.CANCELLED}),
    S.RECEIVED: frozenset(),
    S.CANCELLED: frozenset(),
}

TERMINAL: FrozenSet[ProcurementStatus] = frozenset({S.RECEIVED, S.CANCELLED})

# 只能由收货推导出的状态，人工流转不可直接设置
RECEIPT_DERIVED: FrozenSet[ProcurementStatus] = frozenset({S.PARTIAL})

# 可收货的状态：已下单或部分到货
RECEIVABLE: FrozenSet[ProcurementStatus] = frozenset({S.ORDERED, S.PARTIAL})


def parse_status(value: str) -> ProcurementStatus:
    """字符串 → 枚举；未知值 InvalidInput。"""
    try:
        return ProcurementStatus(str(value).strip().lower())
    except ValueError as e:
        raise InvalidInput(
            f"未知采购单状态：{value}",
            context={"status": value, "allowed": [s.value for s in ProcurementStatus]},
        ) from e


def ensure_transition(current: ProcurementStatus, target: ProcurementStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(current.value, target.value)


def ensure_manual_transition(current: ProcurementStatus, target: ProcurementStatus) -> None:
    """人工流转：在状态机内，且不能直接设为 partial（partial 必须有实际收货）。"""
    ensure_transition(current, target)
    if target in RECEIPT_DERIVED:
        raise InvalidTransition(
            current.value,
            target.value,
            message=f"{target.value} 只能由收货产生，不能人工设置",
        )


def ensure_receivable(current: ProcurementStatus) -> None:
    """只有 ordered / partial 可以收货；pending / approved 尚未下单，终态不再收货。"""
    if current not in RECEIVABLE:
        raise InvalidTransition(
            current.value,
            "receive",
            message=f"采购单当前为 {current.value}，不能收货",
        )


def derive_status_after_receipt(
    current: ProcurementStatus, all_complete: bool
) -> ProcurementStatus:
    """按行完成度推导收货后的状态，并按状态机校验（partial 再收仍为 partial）。"""
    target = S.RECEIVED if all_complete else S.PARTIAL
    if target != current:
        ensure_transition(current, target)
    return target
