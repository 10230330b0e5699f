"""Widen esop_grant numeric columns so stored grants keep uploaded precision.

Revision ID: 0002_widen_grant_numerics
Revises: 0001_create_esop_grant
Create Date: 2026-10-19 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision = "0002_widen_grant_numerics"
down_revision = "0001_create_esop_grant"
branch_labels = None
depends_on = None

UNIT_COLUMNS = ("quantity", "vested")
PRICE_COLUMNS = ("strike_price", "exercise_price", "current_price", "fmv", "sale_price")


def upgrade() -> None:
    for column in UNIT_COLUMNS:
        op.alter_column("esop_grant", column, type_=sa.Numeric(38, 12), existing_type=sa.Numeric(18, 4))
    for column in PRICE_COLUMNS:
        op.alter_column("esop_grant", column, type_=sa.Numeric(38, 12), existing_type=sa.Numeric(18, 6))


def downgrade() -> None:
    for column in PRICE_COLUMNS:
        op.alter_column("esop_grant", column, type_=sa.Numeric(18, 6), existing_type=sa.Numeric(38, 12))
    for column in UNIT_COLUMNS:
        op.alter_column("esop_grant", column, type_=sa.Numeric(18, 4), existing_type=sa.Numeric(38, 12))
