"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18T09:00:00Z
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _created():
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated():
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(18, 4), nullable=nullable)


def upgrade():
    op.create_table(
        "users",
        _id(), _created(), _updated(),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=256), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="viewer"),
        sa.Column("department", sa.String(length=128), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_created_at", "users", ["created_at"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_role_active", "users", ["role", "is_active"])

    op.create_table(
        "auth_refresh_token",
        _id(), _created(),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(length=128), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_ip", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=256), nullable=True),
    )
    op.create_index("ix_auth_refresh_token_created_at", "auth_refresh_token", ["created_at"])
    op.create_index("ix_auth_refresh_token_user_id", "auth_refresh_token", ["user_id"])
    op.create_index("ix_auth_refresh_token_token_hash", "auth_refresh_token", ["token_hash"], unique=True)

    op.create_table(
        "suppliers",
        _id(), _created(), _updated(),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("contact_person", sa.String(length=128), nullable=True),
        sa.Column("email", sa.String(length=256), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
    )
    op.create_index("ix_suppliers_created_at", "suppliers", ["created_at"])
    op.create_index("ix_suppliers_code", "suppliers", ["code"], unique=True)

    op.create_table(
        "materials",
        _id(), _created(), _updated(),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("unit", sa.String(length=16), nullable=False),
        _money("current_stock"), _money("min_stock"), _money("max_stock"), _money("unit_price"),
        sa.Column("supplier", sa.String(length=256), nullable=True),
        sa.Column("location", sa.String(length=128), nullable=True),
        sa.Column("barcode", sa.String(length=128), nullable=True),
        sa.CheckConstraint("current_stock >= 0", name="ck_materials_stock_nonnegative"),
    )
    op.create_index("ix_materials_created_at", "materials", ["created_at"])
    op.create_index("ix_materials_code", "materials", ["code"], unique=True)
    op.create_index("ix_materials_category", "materials", ["category"])

    op.create_table(
        "material_movements",
        _id(), _created(), _updated(),
        sa.Column("material_id", sa.String(length=36), nullable=False),
        sa.Column("material_code", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("material_name", sa.String(length=256), nullable=False, server_default=""),
        sa.Column("type", sa.String(length=8), nullable=False),
        _money("quantity"),
        sa.Column("unit", sa.String(length=16), nullable=False, server_default=""),
        _money("unit_price"), _money("total_price"),
        sa.Column("reason", sa.String(length=256), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=128), nullable=True),
        sa.Column("performed_by", sa.String(length=36), nullable=True),
        sa.Column("work_order_id", sa.String(length=36), nullable=True),
        sa.CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),
    )
    op.create_index("ix_material_movements_created_at", "material_movements", ["created_at"])
    op.create_index("ix_material_movements_material_id", "material_movements", ["material_id"])
    op.create_index("ix_material_movements_type", "material_movements", ["type"])
    op.create_index("ix_material_movements_work_order_id", "material_movements", ["work_order_id"])
    op.create_index("ix_movements_material_time", "material_movements", ["material_id", "created_at"])

    op.create_table(
        "machines",
        _id(), _created(), _updated(),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=True),
        sa.Column("model", sa.String(length=128), nullable=True),
        sa.Column("manufacturer", sa.String(length=128), nullable=True),
        sa.Column("serial_number", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("location", sa.String(length=128), nullable=True),
        sa.Column("install_date", sa.Date(), nullable=True),
        sa.Column("last_maintenance", sa.Date(), nullable=True),
        sa.Column("next_maintenance", sa.Date(), nullable=True),
        sa.Column("specifications", sa.JSON(), nullable=False),
    )
    op.create_index("ix_machines_created_at", "machines", ["created_at"])
    op.create_index("ix_machines_code", "machines", ["code"], unique=True)
    op.create_index("ix_machines_category", "machines", ["category"])
    op.create_index("ix_machines_status", "machines", ["status"])

    op.create_table(
        "bom_items",
        _id(), _created(),
        sa.Column("machine_id", sa.String(length=36), sa.ForeignKey("machines.id", ondelete="CASCADE"), nullable=False),
        sa.Column("material_id", sa.String(length=36), sa.ForeignKey("materials.id", ondelete="CASCADE"), nullable=False),
        sa.Column("material_code", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("material_name", sa.String(length=256), nullable=False, server_default=""),
        _money("quantity"),
        sa.Column("unit", sa.String(length=16), nullable=False, server_default=""),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("machine_id", "material_id", name="uq_bom_machine_material"),
    )
    op.create_index("ix_bom_items_created_at", "bom_items", ["created_at"])
    op.create_index("ix_bom_items_machine_id", "bom_items", ["machine_id"])
    op.create_index("ix_bom_items_material_id", "bom_items", ["material_id"])

    op.create_table(
        "work_orders",
        _id(), _created(), _updated(),
        sa.Column("order_number", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("machine_id", sa.String(length=36), nullable=True),
        sa.Column("machine_name", sa.String(length=256), nullable=True),
        _money("quantity"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PLANNED"),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="MEDIUM"),
        sa.Column("assigned_to", sa.String(length=128), nullable=True),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("materials", sa.JSON(), nullable=False),
        sa.Column("planned_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("planned_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_duration", sa.Integer(), nullable=True),
        sa.Column("actual_duration", sa.Integer(), nullable=True),
    )
    op.create_index("ix_work_orders_created_at", "work_orders", ["created_at"])
    op.create_index("ix_work_orders_order_number", "work_orders", ["order_number"], unique=True)
    op.create_index("ix_work_orders_machine_id", "work_orders", ["machine_id"])
    op.create_index("ix_work_orders_status", "work_orders", ["status"])
    op.create_index("ix_work_orders_status_due", "work_orders", ["status", "due_date"])

    op.create_table(
        "system_logs",
        _id(), _created(),
        sa.Column("level", sa.String(length=16), nullable=False, server_default="info"),
        sa.Column("actor", sa.String(length=256), nullable=False),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=256), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=256), nullable=True),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
    )
    for col in ("created_at", "level", "actor", "action", "entity_type", "entity_id", "request_id"):
        op.create_index(f"ix_system_logs_{col}", "system_logs", [col])
    op.create_index("ix_system_logs_level_time", "system_logs", ["level", "created_at"])

    op.create_table(
        "sys_setting",
        _id(), _created(), _updated(),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("updated_by", sa.String(length=256), nullable=True),
    )
    op.create_index("ix_sys_setting_created_at", "sys_setting", ["created_at"])
    op.create_index("ix_sys_setting_category", "sys_setting", ["category"], unique=True)

    op.create_table(
        "sys_sequence",
        _id(), _created(),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_sys_sequence_created_at", "sys_sequence", ["created_at"])
    op.create_index("ix_sys_sequence_name", "sys_sequence", ["name"], unique=True)


def downgrade():
    for table in (
        "sys_sequence",
        "sys_setting",
        "system_logs",
        "work_orders",
        "bom_items",
        "machines",
        "material_movements",
        "materials",
        "suppliers",
        "auth_refresh_token",
        "users",
    ):
        op.drop_table(table)
