# shelfledger/__init__.py
"""库存一致性核心：仓库 × 规格 的库存余额、调拨、采购收货与 POS 扣减。"""

__version__ = "0.1.0"
