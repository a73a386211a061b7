"""initial inventory ledger schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

UUID_TYPE = sa.Uuid(as_uuid=True)


def upgrade() -> None:
    op.create_table(
        "audit_logs",
        sa.Column("audit_id", sa.String(length=36), primary_key=True),
        sa.Column("actor", sa.String(length=100), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("module", sa.String(length=50), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("resource_type", sa.String(length=100), nullable=True),
        sa.Column("resource_id", sa.String(length=100), nullable=True),
        sa.Column("context", sa.JSON(), nullable=True),
        sa.Column("before", sa.JSON(), nullable=True),
        sa.Column("after", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_resource_id", "audit_logs", ["resource_id"])
    op.create_index("ix_audit_logs_created", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_module_action", "audit_logs", ["module", "action"])
    op.create_index("ix_audit_logs_actor", "audit_logs", ["actor"])

    op.create_table(
        "stores",
        sa.Column("store_id", UUID_TYPE, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("capacity_units", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_stores_active_name", "stores", ["active", "name"])

    op.create_table(
        "store_locations",
        sa.Column("location_id", UUID_TYPE, primary_key=True),
        sa.Column(
            "store_id",
            UUID_TYPE,
            sa.ForeignKey("stores.store_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("section_name", sa.String(length=100), nullable=False),
        sa.Column("shelf_position", sa.String(length=100), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_store_locations_store_section", "store_locations", ["store_id", "section_name"])

    op.create_table(
        "inventory_items",
        sa.Column("item_id", UUID_TYPE, primary_key=True),
        sa.Column(
            "store_id",
            UUID_TYPE,
            sa.ForeignKey("stores.store_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "location_id",
            UUID_TYPE,
            sa.ForeignKey("store_locations.location_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit_of_measure", sa.String(length=50), nullable=False, server_default="each"),
        sa.Column("on_hand_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("reorder_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("store_id", "sku", name="uq_inventory_items_store_sku"),
        sa.CheckConstraint("on_hand_quantity >= 0", name="ck_inventory_items_on_hand_non_negative"),
    )
    op.create_index("ix_inventory_items_location_id", "inventory_items", ["location_id"])
    op.create_index("ix_inventory_items_store_active", "inventory_items", ["store_id", "active"])
    op.create_index("ix_inventory_items_store_sku", "inventory_items", ["store_id", "sku"])

    op.create_table(
        "inventory_transactions",
        sa.Column("transaction_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "item_id",
            UUID_TYPE,
            sa.ForeignKey("inventory_items.item_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("transaction_type", sa.String(length=16), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("resulting_quantity", sa.Integer(), nullable=False),
        sa.Column("reference_type", sa.String(length=50), nullable=True),
        sa.Column("reference_id", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("actor_id", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_inventory_transactions_quantity_positive"),
        sa.CheckConstraint(
            "resulting_quantity >= 0",
            name="ck_inventory_transactions_resulting_non_negative",
        ),
    )
    op.create_index("ix_inventory_transactions_item_id", "inventory_transactions", ["item_id", "transaction_id"])
    op.create_index(
        "ix_inventory_transactions_reference",
        "inventory_transactions",
        ["reference_type", "reference_id"],
    )

    op.create_table(
        "suppliers",
        sa.Column("supplier_id", UUID_TYPE, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("contact_person", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("payment_terms", sa.String(length=100), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_suppliers_active_name", "suppliers", ["active", "name"])

    op.create_table(
        "purchase_orders",
        sa.Column("po_id", UUID_TYPE, primary_key=True),
        sa.Column("po_number", sa.String(length=40), nullable=False, unique=True),
        sa.Column(
            "supplier_id",
            UUID_TYPE,
            sa.ForeignKey("suppliers.supplier_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="DRAFT"),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("expected_delivery_date", sa.Date(), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_by", sa.String(length=100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_purchase_orders_supplier_id", "purchase_orders", ["supplier_id"])
    op.create_index("ix_purchase_orders_status_created", "purchase_orders", ["status", "created_at"])

    op.create_table(
        "purchase_order_items",
        sa.Column("po_item_id", UUID_TYPE, primary_key=True),
        sa.Column(
            "po_id",
            UUID_TYPE,
            sa.ForeignKey("purchase_orders.po_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column(
            "item_id",
            UUID_TYPE,
            sa.ForeignKey("inventory_items.item_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=False),
        sa.Column("line_total_cents", sa.Integer(), nullable=False),
        sa.Column("received_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity_positive"),
        sa.CheckConstraint(
            "received_quantity >= 0",
            name="ck_purchase_order_items_received_non_negative",
        ),
    )
    op.create_index("ix_purchase_order_items_po", "purchase_order_items", ["po_id", "line_number"])


def downgrade() -> None:
    op.drop_index("ix_purchase_order_items_po", table_name="purchase_order_items")
    op.drop_table("purchase_order_items")
    op.drop_index("ix_purchase_orders_status_created", table_name="purchase_orders")
    op.drop_index("ix_purchase_orders_supplier_id", table_name="purchase_orders")
    op.drop_table("purchase_orders")
    op.drop_index("ix_suppliers_active_name", table_name="suppliers")
    op.drop_table("suppliers")
    op.drop_index("ix_inventory_transactions_reference", table_name="inventory_transactions")
    op.drop_index("ix_inventory_transactions_item_id", table_name="inventory_transactions")
    op.drop_table("inventory_transactions")
    op.drop_index("ix_inventory_items_store_sku", table_name="inventory_items")
    op.drop_index("ix_inventory_items_store_active", table_name="inventory_items")
    op.drop_index("ix_inventory_items_location_id", table_name="inventory_items")
    op.drop_table("inventory_items")
    op.drop_index("ix_store_locations_store_section", table_name="store_locations")
    op.drop_table("store_locations")
    op.drop_index("ix_stores_active_name", table_name="stores")
    op.drop_table("stores")
    op.drop_index("ix_audit_logs_actor", table_name="audit_logs")
    op.drop_index("ix_audit_logs_module_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_created", table_name="audit_logs")
    op.drop_index("ix_audit_logs_resource_id", table_name="audit_logs")
    op.drop_table("audit_logs")
