"""Initial schema

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Items table
    op.create_table(
        "items",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(200), nullable=False, default=""),
        sa.Column("archived", sa.Boolean(), nullable=True, default=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_items_owner_id", "items", ["owner_id"])

    # Item variants table
    op.create_table(
        "item_variants",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("item_id", sa.String(36), nullable=False),
        sa.Column("position", sa.Integer(), default=0),
        sa.Column("type", sa.String(100), nullable=False, default=""),
        sa.Column("unit_price", sa.String(64), nullable=True),
        sa.Column("requires_shipping", sa.Boolean(), nullable=True),
        sa.Column("start_month", sa.String(7), nullable=True),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_item_variants_item_id", "item_variants", ["item_id"])

    # Platforms table
    op.create_table(
        "platforms",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(200), nullable=False, default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_platforms_owner_id", "platforms", ["owner_id"])

    # Payment methods table
    op.create_table(
        "payment_methods",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("platform_id", sa.String(36), nullable=False),
        sa.Column("position", sa.Integer(), default=0),
        sa.Column("name", sa.String(200), default=""),
        sa.Column("fee_percentage", sa.String(64), nullable=True),
        sa.Column("shipping_fee", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["platform_id"], ["platforms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payment_methods_platform_id", "payment_methods", ["platform_id"])

    # Item settings table
    op.create_table(
        "item_settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("platform_id", sa.String(36), nullable=False),
        sa.Column("item_id", sa.String(36), nullable=False),
        sa.Column("position", sa.Integer(), default=0),
        sa.ForeignKeyConstraint(["platform_id"], ["platforms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_item_settings_platform_id", "item_settings", ["platform_id"])
    op.create_index("ix_item_settings_item_id", "item_settings", ["item_id"])

    # Variant overrides table
    op.create_table(
        "variant_overrides",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("item_setting_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), default=0),
        sa.Column("variant_type", sa.String(100), nullable=True),
        sa.Column("fee_percentage", sa.String(64), nullable=True),
        sa.Column("shipping_fee", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["item_setting_id"], ["item_settings.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_variant_overrides_item_setting_id", "variant_overrides", ["item_setting_id"])

    # Sales ledger table
    op.create_table(
        "sales",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("item_id", sa.String(36), nullable=False, default=""),
        sa.Column("item_name", sa.String(200), nullable=True),
        sa.Column("variant_type", sa.String(100), nullable=False, default=""),
        sa.Column("platform_id", sa.String(36), nullable=True),
        sa.Column("platform_name", sa.String(200), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, default=0),
        sa.Column("base_price", sa.String(64), nullable=True),
        sa.Column("fee_percentage", sa.String(64), nullable=True),
        sa.Column("shipping_fee", sa.String(64), nullable=True),
        sa.Column("total_amount", sa.String(64), nullable=True),
        sa.Column("sale_date", sa.DateTime(), nullable=True),
        sa.Column("month", sa.String(7), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_owner_id", "sales", ["owner_id"])
    op.create_index("ix_sales_month", "sales", ["month"])
    op.create_index("ix_sales_owner_month", "sales", ["owner_id", "month"])


def downgrade() -> None:
    op.drop_table("sales")
    op.drop_table("variant_overrides")
    op.drop_table("item_settings")
    op.drop_table("payment_methods")
    op.drop_table("platforms")
    op.drop_table("item_variants")
    op.drop_table("items")
