"""initial_inventory_core

Revision ID: 3f2a9c1d7e40
Revises:
Create Date: 2026-10-18 09:30:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7e40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


QTY = sa.Numeric(12, 3)
MONEY = sa.Numeric(12, 2)


def upgrade() -> None:
    # 主档：仓库 / 商品族 / 规格 / 供应商
    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="store"),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "product_families",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
    )
    op.create_table(
        "product_variants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "family_id",
            sa.Integer(),
            sa.ForeignKey("product_families.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False, unique=True),
        sa.Column("unit", sa.String(length=16), nullable=False, server_default="pcs"),
        sa.Column("cost_price", MONEY, nullable=False, server_default="0"),
        sa.Column("selling_price", MONEY, nullable=True),
        sa.Column("conversion_factor", QTY, nullable=False, server_default="1"),
    )
    op.create_index("ix_product_variants_family_id", "product_variants", ["family_id"])
    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
    )

    # 库存余额：(warehouse_id, variant_id) 唯一，upsert 的冲突目标
    op.create_table(
        "inventory_levels",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "warehouse_id",
            sa.Integer(),
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "variant_id",
            sa.Integer(),
            sa.ForeignKey("product_variants.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", QTY, nullable=False, server_default="0"),
        sa.Column("batch_number", sa.String(length=64), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("warehouse_id", "variant_id", name="uq_inventory_levels_wh_variant"),
    )
    op.create_index("ix_inventory_levels_warehouse_id", "inventory_levels", ["warehouse_id"])
    op.create_index("ix_inventory_levels_variant_id", "inventory_levels", ["variant_id"])
    op.create_index("ix_inventory_levels_expiry", "inventory_levels", ["expiry_date"])

    op.create_table(
        "inventory_movements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=32), nullable=False),
        sa.Column("ref", sa.String(length=128), nullable=True),
        sa.Column("delta", QTY, nullable=False),
        sa.Column("after_quantity", QTY, nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_inventory_movements_wh_variant", "inventory_movements", ["warehouse_id", "variant_id"]
    )
    op.create_index("ix_inventory_movements_ref", "inventory_movements", ["ref"])

    # 仓间调拨
    op.create_table(
        "inventory_transfers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "source_warehouse_id",
            sa.Integer(),
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "destination_warehouse_id",
            sa.Integer(),
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("authorized_by_user_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("transferred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "source_warehouse_id <> destination_warehouse_id",
            name="ck_inventory_transfers_distinct_wh",
        ),
    )
    op.create_index(
        "ix_inventory_transfers_source_warehouse_id", "inventory_transfers", ["source_warehouse_id"]
    )
    op.create_index(
        "ix_inventory_transfers_destination_warehouse_id",
        "inventory_transfers",
        ["destination_warehouse_id"],
    )
    op.create_table(
        "inventory_transfer_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "transfer_id",
            sa.Integer(),
            sa.ForeignKey("inventory_transfers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "variant_id",
            sa.Integer(),
            sa.ForeignKey("product_variants.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", QTY, nullable=False),
    )
    op.create_index(
        "ix_inventory_transfer_items_transfer_id", "inventory_transfer_items", ["transfer_id"]
    )

    # 采购
    op.create_table(
        "procurements",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "supplier_id",
            sa.Integer(),
            sa.ForeignKey("suppliers.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "warehouse_id",
            sa.Integer(),
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("ordered_by_user_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("expected_delivery", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_received_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_procurements_supplier_id", "procurements", ["supplier_id"])
    op.create_index("ix_procurements_warehouse_id", "procurements", ["warehouse_id"])
    op.create_index("ix_procurements_status", "procurements", ["status"])
    op.create_table(
        "procurement_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "procurement_id",
            sa.Integer(),
            sa.ForeignKey("procurements.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "variant_id",
            sa.Integer(),
            sa.ForeignKey("product_variants.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity_ordered", QTY, nullable=False),
        sa.Column("quantity_received", QTY, nullable=False, server_default="0"),
        sa.Column("unit_cost", MONEY, nullable=False),
        sa.CheckConstraint("quantity_ordered > 0", name="ck_procurement_items_ordered_pos"),
        sa.CheckConstraint(
            "quantity_received >= 0 AND quantity_received <= quantity_ordered",
            name="ck_procurement_items_received_range",
        ),
    )
    op.create_index("ix_procurement_items_procurement_id", "procurement_items", ["procurement_id"])

    # POS 销售
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "warehouse_id",
            sa.Integer(),
            sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("total_amount", MONEY, nullable=False),
        sa.Column("tax_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("discount_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("payment_method", sa.String(length=16), nullable=False),
        sa.Column("processed_by_user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_sales_warehouse_id", "sales", ["warehouse_id"])
    op.create_index("ix_sales_created_at", "sales", ["created_at"])
    op.create_table(
        "sale_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "sale_id",
            sa.Integer(),
            sa.ForeignKey("sales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "variant_id",
            sa.Integer(),
            sa.ForeignKey("product_variants.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("unit_price", MONEY, nullable=False),
        sa.Column("line_total", MONEY, nullable=False),
    )
    op.create_index("ix_sale_items_sale_id", "sale_items", ["sale_id"])


def downgrade() -> None:
    op.drop_table("sale_items")
    op.drop_table("sales")
    op.drop_table("procurement_items")
    op.drop_table("procurements")
    op.drop_table("inventory_transfer_items")
    op.drop_table("inventory_transfers")
    op.drop_table("inventory_movements")
    op.drop_table("inventory_levels")
    op.drop_table("suppliers")
    op.drop_table("product_variants")
    op.drop_table("product_families")
    op.drop_table("warehouses")
