"""add purchasing tables

Revision ID: 3f1c2a9d7b40
Revises:
Create Date: 2026-10-16 09:12:31.418207

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f1c2a9d7b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("vendor", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "po_lines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "po_id",
            sa.String(length=64),
            sa.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("line_num", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("ipn", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("qty", sa.Float(), nullable=False, server_default="1"),
        sa.Column("unit_price", sa.Float(), nullable=False, server_default="0"),
    )

    # Latest-price lookups filter on ipn
    op.create_index("ix_po_lines_ipn", "po_lines", ["ipn"])


def downgrade() -> None:
    op.drop_index("ix_po_lines_ipn", table_name="po_lines")
    op.drop_table("po_lines")
    op.drop_table("purchase_orders")
