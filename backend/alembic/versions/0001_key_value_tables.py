"""key_value_tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the SQL key-value backend: kv_entries (strings),
kv_list_items (ordered lists), kv_set_members (sets).
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- kv_entries ---
    op.create_table(
        "kv_entries",
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column("value", sa.Text, nullable=False, server_default=""),
    )

    # --- kv_list_items ---
    op.create_table(
        "kv_list_items",
        sa.Column("item_id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("value", sa.Text, nullable=False),
    )
    op.create_index("ix_kv_list_items_key", "kv_list_items", ["key"])

    # --- kv_set_members ---
    op.create_table(
        "kv_set_members",
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column("member", sa.String(255), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table("kv_set_members")
    op.drop_index("ix_kv_list_items_key", table_name="kv_list_items")
    op.drop_table("kv_list_items")
    op.drop_table("kv_entries")
