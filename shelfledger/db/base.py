# shelfledger/db/base.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
