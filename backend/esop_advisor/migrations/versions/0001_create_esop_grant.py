"""Create esop_grant table."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_create_esop_grant"
down_revision = None
branch_labels = None
depends_on = None

GRANT_STATUSES = ("Unvested", "Vested", "Exercised", "Sold", "Expired", "Lapsed")


def upgrade() -> None:
    op.create_table(
        "esop_grant",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ticker", sa.String(length=32), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=False),
        sa.Column("grant_date", sa.Date(), nullable=False),
        sa.Column("vesting_start_date", sa.Date(), nullable=False),
        sa.Column("vesting_end_date", sa.Date(), nullable=True),
        sa.Column("quantity", sa.Numeric(18, 4), nullable=False),
        sa.Column("vested", sa.Numeric(18, 4), nullable=False),
        sa.Column("strike_price", sa.Numeric(18, 6), nullable=False, server_default="0"),
        sa.Column("exercise_price", sa.Numeric(18, 6), nullable=False, server_default="0"),
        sa.Column("current_price", sa.Numeric(18, 6), nullable=True),
        sa.Column("fmv", sa.Numeric(18, 6), nullable=True),
        sa.Column("sale_price", sa.Numeric(18, 6), nullable=True),
        sa.Column("sale_date", sa.Date(), nullable=True),
        sa.Column("status", sa.Enum(*GRANT_STATUSES, name="grant_status"), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False, server_default="ESOP"),
        sa.Column("notes", sa.String(length=1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_esop_grant_owner_id", "esop_grant", ["owner_id"])
    op.create_index("ix_esop_grant_owner_ticker", "esop_grant", ["owner_id", "ticker"])


def downgrade() -> None:
    op.drop_index("ix_esop_grant_owner_ticker", table_name="esop_grant")
    op.drop_index("ix_esop_grant_owner_id", table_name="esop_grant")
    op.drop_table("esop_grant")
    sa.Enum(name="grant_status").drop(op.get_bind(), checkfirst=True)
