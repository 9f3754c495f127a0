"""initial manufacturing schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17T09:00:00Z
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _stamps(authors: bool = True, updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    if authors:
        cols += [
            sa.Column("created_by", sa.String(length=128), nullable=True),
            sa.Column("modified_by", sa.String(length=128), nullable=True),
        ]
    return cols


def _fk(name: str, target: str, nullable: bool = False):
    return sa.Column(name, sa.String(length=36), sa.ForeignKey(f"{target}.id"), nullable=nullable, index=True)


def upgrade():
    # Users
    op.create_table(
        "app_user",
        _id(), *_stamps(),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="OPERATOR", index=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "inspector",
        _id(), *_stamps(),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("app_user.id"), nullable=False, unique=True),
        sa.Column("employee_code", sa.String(length=64), nullable=True, unique=True),
        sa.Column("department", sa.String(length=128), nullable=True),
        sa.Column("specialization", sa.String(length=128), nullable=True),
        sa.Column("certification", sa.String(length=128), nullable=True),
        sa.Column("certification_expiry", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )

    # Catalog
    op.create_table(
        "material_type",
        _id(), *_stamps(),
        sa.Column("name", sa.String(length=128), nullable=False, unique=True, index=True),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_table(
        "unit_of_measure",
        _id(), *_stamps(),
        sa.Column("name", sa.String(length=64), nullable=False, unique=True),
        sa.Column("symbol", sa.String(length=16), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_table(
        "category",
        _id(), *_stamps(),
        sa.Column("name", sa.String(length=128), nullable=False, unique=True, index=True),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_table(
        "supplier",
        _id(), *_stamps(),
        sa.Column("code", sa.String(length=32), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(length=256), nullable=False, index=True),
        sa.Column("contact_person", sa.String(length=128), nullable=True),
        sa.Column("email", sa.String(length=256), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
        sa.Column("notes", sa.Text(), nullable=True),
    )

    # Materials & products
    op.create_table(
        "material",
        _id(), *_stamps(),
        sa.Column("sku", sa.String(length=64), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(length=256), nullable=False, index=True),
        _fk("type_id", "material_type"),
        _fk("unit_of_measure_id", "unit_of_measure"),
        _fk("supplier_id", "supplier", nullable=True),
        sa.Column("cost_per_unit", sa.Numeric(12, 2), nullable=False),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("minimum_stock_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lead_time_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_material_status_name", "material", ["status", "name"])

    op.create_table(
        "product",
        _id(), *_stamps(),
        sa.Column("sku", sa.String(length=64), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(length=256), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("category_id", "category", nullable=True),
        sa.Column("selling_price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("minimum_stock_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
    )
    op.create_table(
        "bom_entry",
        _id(), *_stamps(),
        _fk("product_id", "product"),
        _fk("material_id", "material"),
        sa.Column("quantity_needed", sa.Numeric(12, 4), nullable=False),
        sa.Column("waste_percentage", sa.Numeric(6, 2), nullable=False, server_default="0"),
        sa.UniqueConstraint("product_id", "material_id", name="uq_bom_entry_product_material"),
    )

    # Sales
    op.create_table(
        "customer",
        _id(), *_stamps(),
        sa.Column("name", sa.String(length=256), nullable=False, index=True),
        sa.Column("email", sa.String(length=256), nullable=True, index=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_table(
        "customer_order",
        _id(), *_stamps(),
        sa.Column("order_number", sa.String(length=32), nullable=False, unique=True, index=True),
        _fk("customer_id", "customer"),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("required_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_table(
        "customer_order_line",
        _id(), *_stamps(authors=False),
        _fk("customer_order_id", "customer_order"),
        _fk("product_id", "product"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
    )

    # Production
    op.create_table(
        "work_center",
        _id(), *_stamps(),
        sa.Column("name", sa.String(length=128), nullable=False, unique=True, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=128), nullable=True),
        sa.Column("capacity_per_hour", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost_per_hour", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="ACTIVE"),
    )
    op.create_table(
        "work_center_user",
        _id(), *_stamps(authors=False, updated=False),
        _fk("work_center_id", "work_center"),
        _fk("user_id", "app_user"),
        sa.Column("is_responsible", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("work_center_id", "user_id", name="uq_work_center_user"),
    )
    op.create_table(
        "production_order",
        _id(), *_stamps(),
        _fk("product_id", "product"),
        _fk("customer_order_id", "customer_order", nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING", index=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_production_order_product_status", "production_order", ["product_id", "status"])
    op.create_table(
        "operation",
        _id(), *_stamps(),
        _fk("production_order_id", "production_order"),
        _fk("work_center_id", "work_center"),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cost", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_table(
        "quality_check",
        _id(), *_stamps(),
        _fk("production_order_id", "production_order"),
        _fk("inspector_id", "app_user"),
        sa.Column("check_date", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("defects_found", sa.Text(), nullable=True),
        sa.Column("action_taken", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )

    # Purchasing
    op.create_table(
        "purchase_order",
        _id(), *_stamps(),
        sa.Column("po_number", sa.String(length=32), nullable=False, unique=True, index=True),
        _fk("supplier_id", "supplier"),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("expected_delivery", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_table(
        "purchase_order_line",
        _id(), *_stamps(),
        _fk("po_id", "purchase_order", nullable=True),
        _fk("material_id", "material"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
    )

    # Stock ledger & outbox
    op.create_table(
        "inventory_transaction",
        _id(), *_stamps(authors=False, updated=False),
        _fk("material_id", "material"),
        sa.Column("txn_type", sa.String(length=16), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("reference_type", sa.String(length=32), nullable=True),
        sa.Column("reference_id", sa.String(length=36), nullable=True, index=True),
        sa.Column("actor", sa.String(length=128), nullable=False),
    )
    op.create_index("ix_inventory_txn_material_created", "inventory_transaction", ["material_id", "created_at"])
    op.create_table(
        "outbox_event",
        _id(), *_stamps(authors=False, updated=False),
        sa.Column("topic", sa.String(length=128), nullable=False, index=True),
        sa.Column("payload", sa.JSON(), nullable=False),
    )
    op.create_index("ix_outbox_topic_created", "outbox_event", ["topic", "created_at"])


def downgrade():
    for table in (
        "outbox_event",
        "inventory_transaction",
        "purchase_order_line",
        "purchase_order",
        "quality_check",
        "operation",
        "production_order",
        "work_center_user",
        "work_center",
        "customer_order_line",
        "customer_order",
        "customer",
        "bom_entry",
        "product",
        "material",
        "supplier",
        "category",
        "unit_of_measure",
        "material_type",
        "inspector",
        "app_user",
    ):
        op.drop_table(table)
