# shelfledger/services/stock_levels.py
"""
库存余额的原子读写。

所有增减都是单条 SQL：
- 增加：INSERT … ON CONFLICT (warehouse_id, variant_id) DO UPDATE SET quantity = quantity + delta
- 扣减：UPDATE … SET quantity = quantity - amount WHERE quantity >= amount
绝不先读后写；并发下由数据库行锁（PG）或写锁（SQLite BEGIN IMMEDIATE）保证不丢更新。
"""
from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence, Tuple, Type

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from shelfledger.db.base import utcnow
from shelfledger.models.inventory_level import InventoryLevel
from shelfledger.services.errors import InvalidInput, InvalidQuantity, LedgerError

# 与列定义一致：数量 NUMERIC(12,3)，金额 NUMERIC(12,2)
NUMERIC_PRECISION = 12
QTY_PLACES = 3
MONEY_PLACES = 2

_T = InventoryLevel.__table__


def _limit(places: int) -> Decimal:
    return Decimal(10) ** (NUMERIC_PRECISION - places)


QTY_LIMIT = _limit(QTY_PLACES)


def _parse_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidInput(f"{field} 必须是十进制数，不接受浮点", context={"field": field})
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidInput(f"{field} 不是合法数字", context={"field": field}) from e


def _ensure_fits(q: Decimal, *, field: str, places: int, error: Type[LedgerError]) -> Decimal:
    """
    值必须能原样落库：小数位不超过 places，整数位不超过 12 - places。
    库里会被四舍五入或溢出的值一律拒绝，不做截断。
    """
    if not q.is_finite():
        raise error(f"{field} 必须是有限值", context={"field": field})
    if abs(q) >= _limit(places):
        raise error(
            f"{field} 超出范围",
            context={"field": field, "value": str(q), "limit": str(_limit(places))},
        )
    if q != q.quantize(Decimal(1).scaleb(-places)):
        raise error(
            f"{field} 最多 {places} 位小数",
            context={"field": field, "value": str(q), "places": places},
        )
    return q


def to_quantity(value: Any, *, field: str = "quantity") -> Decimal:
    """数量统一为 Decimal；拒绝浮点、非有限值、超过 3 位小数或超出列范围的值。"""
    return _ensure_fits(
        _parse_decimal(value, field), field=field, places=QTY_PLACES, error=InvalidQuantity
    )


def to_money(value: Any, *, field: str) -> Decimal:
    """金额统一为 Decimal；最多 2 位小数，超出列范围 InvalidInput。"""
    return _ensure_fits(
        _parse_decimal(value, field), field=field, places=MONEY_PLACES, error=InvalidInput
    )


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"unsupported dialect for upsert: {dialect}")


async def read_quantity(session: AsyncSession, *, warehouse_id: int, variant_id: int) -> Decimal:
    """当前余额；行不存在返回 0。"""
    stmt = select(_T.c.quantity).where(
        _T.c.warehouse_id == int(warehouse_id),
        _T.c.variant_id == int(variant_id),
    )
    q = (await session.execute(stmt)).scalar_one_or_none()
    return Decimal(q) if q is not None else Decimal("0")


async def upsert_increment(
    session: AsyncSession,
    *,
    warehouse_id: int,
    variant_id: int,
    delta: Decimal,
    batch_number: Optional[str] = None,
    expiry_date: Optional[date] = None,
) -> Decimal:
    """
    原子加：行不存在则以 delta 建行；返回加后余额。
    batch_number / expiry_date 仅在给出时覆盖。
    """
    insert = _insert_for(session)
    ins = insert(_T).values(
        warehouse_id=int(warehouse_id),
        variant_id=int(variant_id),
        quantity=delta,
        batch_number=batch_number,
        expiry_date=expiry_date,
        updated_at=utcnow(),
    )
    set_: dict[str, Any] = {
        "quantity": _T.c.quantity + ins.excluded.quantity,
        "updated_at": ins.excluded.updated_at,
    }
    if batch_number is not None:
        set_["batch_number"] = ins.excluded.batch_number
    if expiry_date is not None:
        set_["expiry_date"] = ins.excluded.expiry_date

    # 加后余额超出列范围时条件不成立，不写入
    stmt = ins.on_conflict_do_update(
        index_elements=[_T.c.warehouse_id, _T.c.variant_id],
        set_=set_,
        where=func.abs(_T.c.quantity + ins.excluded.quantity) < QTY_LIMIT,
    ).returning(_T.c.quantity)
    row = (await session.execute(stmt)).first()
    if row is None:
        raise InvalidQuantity(
            "调整后余额超出范围",
            context={
                "warehouse_id": int(warehouse_id),
                "variant_id": int(variant_id),
                "delta": str(delta),
                "limit": str(QTY_LIMIT),
            },
        )
    return Decimal(row[0])


async def decrement_strict(
    session: AsyncSession,
    *,
    warehouse_id: int,
    variant_id: int,
    amount: Decimal,
    batch_number: Optional[str] = None,
    expiry_date: Optional[date] = None,
) -> Optional[Decimal]:
    """
    条件扣减：仅当 quantity >= amount 时生效，返回扣后余额；
    未命中（无行或余额不足）返回 None，由调用方决定报错。
    """
    values: dict[str, Any] = {
        "quantity": _T.c.quantity - amount,
        "updated_at": utcnow(),
    }
    if batch_number is not None:
        values["batch_number"] = batch_number
    if expiry_date is not None:
        values["expiry_date"] = expiry_date

    stmt = (
        update(_T)
        .where(
            _T.c.warehouse_id == int(warehouse_id),
            _T.c.variant_id == int(variant_id),
            _T.c.quantity >= amount,
        )
        .values(**values)
        .returning(_T.c.quantity)
    )
    row = (await session.execute(stmt)).first()
    return Decimal(row[0]) if row is not None else None


async def load_level(
    session: AsyncSession, *, warehouse_id: int, variant_id: int
) -> InventoryLevel:
    """
    读余额行（populate_existing 覆盖 identity map 里的旧值）；
    行不存在时返回未入 session 的 0 余额对象。
    """
    stmt = (
        select(InventoryLevel)
        .where(
            InventoryLevel.warehouse_id == int(warehouse_id),
            InventoryLevel.variant_id == int(variant_id),
        )
        .execution_options(populate_existing=True)
    )
    lvl = (await session.execute(stmt)).scalars().first()
    if lvl is None:
        return InventoryLevel(
            warehouse_id=int(warehouse_id),
            variant_id=int(variant_id),
            quantity=Decimal("0"),
        )
    return lvl


async def query_levels(
    session: AsyncSession,
    *,
    offset: int,
    limit: int,
    warehouse_id: Optional[int] = None,
    variant_id: Optional[int] = None,
) -> Tuple[List[InventoryLevel], int]:
    conds = []
    if warehouse_id is not None:
        conds.append(InventoryLevel.warehouse_id == int(warehouse_id))
    if variant_id is not None:
        conds.append(InventoryLevel.variant_id == int(variant_id))

    total = (
        await session.execute(select(func.count()).select_from(InventoryLevel).where(*conds))
    ).scalar_one()
    stmt = (
        select(InventoryLevel)
        .where(*conds)
        .order_by(InventoryLevel.warehouse_id, InventoryLevel.variant_id)
        .offset(int(offset))
        .limit(int(limit))
        .execution_options(populate_existing=True)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return list(rows), int(total)


async def query_expiring(
    session: AsyncSession, *, days: int, today: Optional[date] = None
) -> Sequence[InventoryLevel]:
    """expiry_date ≤ today + days 且仍有库存的行，按到期日升序。"""
    cutoff = (today or date.today()) + timedelta(days=int(days))
    stmt = (
        select(InventoryLevel)
        .where(InventoryLevel.expiry_date.is_not(None))
        .where(InventoryLevel.expiry_date <= cutoff)
        .where(InventoryLevel.quantity > 0)
        .order_by(InventoryLevel.expiry_date, InventoryLevel.id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalars().all()


async def query_low_stock(session: AsyncSession, *, threshold: Decimal) -> Sequence[InventoryLevel]:
    """quantity < threshold 的行，按余额升序。"""
    stmt = (
        select(InventoryLevel)
        .where(InventoryLevel.quantity < threshold)
        .order_by(InventoryLevel.quantity, InventoryLevel.id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalars().all()
