"""Persisted ESOP grant records."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from esop_advisor.db.base import Base
from esop_advisor.services.records import NUMERIC_PRECISION, NUMERIC_SCALE, TEXT_LIMITS, VALID_STATUSES

GRANT_STATUSES = VALID_STATUSES
_AMOUNT = Numeric(NUMERIC_PRECISION, NUMERIC_SCALE)


class EsopGrant(Base):
    __tablename__ = "esop_grant"
    __table_args__ = (Index("ix_esop_grant_owner_ticker", "owner_id", "ticker"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), index=True)
    position: Mapped[int] = mapped_column(default=0)

    ticker: Mapped[str] = mapped_column(String(TEXT_LIMITS["ticker"]))
    company: Mapped[str] = mapped_column(String(TEXT_LIMITS["company"]))
    grant_date: Mapped[date] = mapped_column(Date)
    vesting_start_date: Mapped[date] = mapped_column(Date)
    vesting_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    quantity: Mapped[Decimal] = mapped_column(_AMOUNT)
    vested: Mapped[Decimal] = mapped_column(_AMOUNT)
    strike_price: Mapped[Decimal] = mapped_column(_AMOUNT, default=0)
    exercise_price: Mapped[Decimal] = mapped_column(_AMOUNT, default=0)
    current_price: Mapped[Decimal | None] = mapped_column(_AMOUNT, nullable=True)
    fmv: Mapped[Decimal | None] = mapped_column(_AMOUNT, nullable=True)
    sale_price: Mapped[Decimal | None] = mapped_column(_AMOUNT, nullable=True)
    sale_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(Enum(*GRANT_STATUSES, name="grant_status"))
    type: Mapped[str] = mapped_column(String(TEXT_LIMITS["type"]), default="ESOP")
    notes: Mapped[str | None] = mapped_column(String(TEXT_LIMITS["notes"]), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
