# shelfledger/models/__init__.py
# 集中导入，保证 Base.metadata 完整（alembic / create_all 依赖）
from shelfledger.models.catalog import ProductFamily, ProductVariant
from shelfledger.models.inventory_level import InventoryLevel
from shelfledger.models.inventory_movement import InventoryMovement
from shelfledger.models.inventory_transfer import InventoryTransfer, InventoryTransferItem
from shelfledger.models.procurement import Procurement, ProcurementItem
from shelfledger.models.sale import Sale, SaleItem
from shelfledger.models.supplier import Supplier
from shelfledger.models.warehouse import Warehouse

__all__ = [
    "InventoryLevel",
    "InventoryMovement",
    "InventoryTransfer",
    "InventoryTransferItem",
    "Procurement",
    "ProcurementItem",
    "ProductFamily",
    "ProductVariant",
    "Sale",
    "SaleItem",
    "Supplier",
    "Warehouse",
]
