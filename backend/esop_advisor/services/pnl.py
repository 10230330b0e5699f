"""Per-row PnL under the unified investment-based model.

Every row is valued as ``(price_used - exercise_price) * units``. The status
decides which price and how many units are in play:

* Unvested rows never contribute.
* Vested and Exercised rows are unrealized on the vested units at the current
  price. The result keeps its sign; underwater grants report negative PnL.
* Sold rows are realized on the full quantity at the sale price and are the
  only rows that are taxed.
* Expired and Lapsed rows are excluded from the portfolio.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, Overflow, localcontext
from typing import Callable

from esop_advisor.core.errors import ComputationError

from .records import GrantStatus, NormalizedRecord, PriceKind, PriceSource
from .tax import TaxRegion, split_gain, tax_on_split

ZERO = Decimal("0")
CENT = Decimal("0.01")
DAYS_PER_YEAR = Decimal("365")
_RATIO_PLACES = Decimal("0.000001")

NO_PRICE_ERROR = "No price data available"


@dataclass(frozen=True)
class PnLContext:
    region: TaxRegion
    inflation_rate: Decimal
    as_of: date


@dataclass(frozen=True)
class RowCalculation:
    ticker: str
    company: str
    status: GrantStatus
    grant_date: date
    quantity: Decimal
    vested: Decimal
    exercise_price: Decimal
    price: PriceSource | None
    sale_price: Decimal | None
    sale_date: date | None
    cost_basis: Decimal
    current_value: Decimal
    unrealized_pnl: Decimal
    realized_pnl: Decimal
    tax: Decimal
    post_tax_pnl: Decimal
    inflation_adjusted_pnl: Decimal
    holding_period_days: int
    holding_period_years: Decimal
    cagr: Decimal | None
    is_active: bool
    error: str | None = None

    @property
    def total_pnl(self) -> Decimal:
        return self.realized_pnl + self.unrealized_pnl


@dataclass(frozen=True)
class _Legs:
    price: PriceSource | None
    cost_basis: Decimal = ZERO
    current_value: Decimal = ZERO
    unrealized_pnl: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    tax: Decimal = ZERO
    is_active: bool = True
    error: str | None = None


def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def holding_period_days(record: NormalizedRecord, as_of: date) -> int:
    end = record.sale_date if record.status is GrantStatus.SOLD and record.sale_date else as_of
    return max(0, (end - record.grant_date).days)


def compute_cagr(current_value: Decimal, cost_basis: Decimal, years: Decimal) -> Decimal | None:
    """Compound annual growth rate, or ``None`` when it is undefined.

    Short holding periods raise the value ratio to a large power; a growth
    rate that does not fit the working precision is reported as ``None``.
    The row itself is still valued.
    """

    if cost_basis <= 0 or years <= 0 or current_value < 0:
        return None
    try:
        with localcontext() as ctx:
            ctx.traps[InvalidOperation] = True
            ctx.traps[Overflow] = True
            growth = (current_value / cost_basis) ** (Decimal(1) / years) - 1
            return growth.quantize(_RATIO_PLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, Overflow):
        return None


def deflate(value: Decimal, inflation_rate: Decimal, years: Decimal) -> Decimal:
    """Real value of ``value`` after ``years`` of compounded inflation."""

    if years <= 0 or inflation_rate == 0:
        return value
    return value / ((1 + inflation_rate) ** years)


def _unvested(record: NormalizedRecord, price: PriceSource | None, days: int, ctx: PnLContext) -> _Legs:
    return _Legs(price=price)


def _held(record: NormalizedRecord, price: PriceSource | None, days: int, ctx: PnLContext) -> _Legs:
    if price is None:
        return _Legs(price=None, is_active=False, error=NO_PRICE_ERROR)
    units = record.vested
    cost_basis = money(record.exercise_price * units)
    current_value = money(price.value * units)
    return _Legs(
        price=price,
        cost_basis=cost_basis,
        current_value=current_value,
        unrealized_pnl=money((price.value - record.exercise_price) * units),
    )


def _sold(record: NormalizedRecord, price: PriceSource | None, days: int, ctx: PnLContext) -> _Legs:
    if record.sale_price is None:
        raise ComputationError(f"Sold grant for {record.ticker} has no sale price")
    units = record.quantity
    split = split_gain(
        units,
        record.exercise_price,
        record.fmv,
        record.sale_price,
        holding_period_days=days,
        region=ctx.region,
    )
    return _Legs(
        price=PriceSource(kind=PriceKind.CSV, value=record.sale_price),
        cost_basis=money(record.exercise_price * units),
        current_value=money(record.sale_price * units),
        realized_pnl=money(split.total_gain),
        tax=money(tax_on_split(split, ctx.region)),
    )


def _excluded(record: NormalizedRecord, price: PriceSource | None, days: int, ctx: PnLContext) -> _Legs:
    return _Legs(price=price, is_active=False)


_FORMULAS: dict[GrantStatus, Callable[[NormalizedRecord, PriceSource | None, int, PnLContext], _Legs]] = {
    GrantStatus.UNVESTED: _unvested,
    GrantStatus.VESTED: _held,
    GrantStatus.EXERCISED: _held,
    GrantStatus.SOLD: _sold,
    GrantStatus.EXPIRED: _excluded,
    GrantStatus.LAPSED: _excluded,
}

_unhandled = set(GrantStatus) - set(_FORMULAS)
if _unhandled:  # pragma: no cover - guards against adding a status without a formula
    raise RuntimeError(f"No PnL formula for statuses: {sorted(s.value for s in _unhandled)}")


def needs_market_price(record: NormalizedRecord) -> bool:
    return record.status in (GrantStatus.VESTED, GrantStatus.EXERCISED)


def calculate_row(record: NormalizedRecord, price: PriceSource | None, ctx: PnLContext) -> RowCalculation:
    """Compute one row; ``price`` is the resolved current price, if any."""

    days = holding_period_days(record, ctx.as_of)
    years = Decimal(days) / DAYS_PER_YEAR
    legs = _FORMULAS[record.status](record, price, days, ctx)

    post_tax = (legs.realized_pnl - legs.tax) + legs.unrealized_pnl
    cagr = compute_cagr(legs.current_value, legs.cost_basis, years) if legs.is_active else None
    return RowCalculation(
        ticker=record.ticker,
        company=record.company,
        status=record.status,
        grant_date=record.grant_date,
        quantity=record.quantity,
        vested=record.vested,
        exercise_price=record.exercise_price,
        price=legs.price,
        sale_price=record.sale_price,
        sale_date=record.sale_date,
        cost_basis=legs.cost_basis,
        current_value=legs.current_value,
        unrealized_pnl=legs.unrealized_pnl,
        realized_pnl=legs.realized_pnl,
        tax=legs.tax,
        post_tax_pnl=post_tax,
        inflation_adjusted_pnl=money(deflate(post_tax, ctx.inflation_rate, years)),
        holding_period_days=days,
        holding_period_years=years.quantize(CENT, rounding=ROUND_HALF_UP),
        cagr=cagr,
        is_active=legs.is_active,
        error=legs.error,
    )


def failed_row(record: NormalizedRecord, error: str) -> RowCalculation:
    """Inactive placeholder for a row that could not be computed."""

    return RowCalculation(
        ticker=record.ticker,
        company=record.company,
        status=record.status,
        grant_date=record.grant_date,
        quantity=record.quantity,
        vested=record.vested,
        exercise_price=record.exercise_price,
        price=None,
        sale_price=record.sale_price,
        sale_date=record.sale_date,
        cost_basis=ZERO,
        current_value=ZERO,
        unrealized_pnl=ZERO,
        realized_pnl=ZERO,
        tax=ZERO,
        post_tax_pnl=ZERO,
        inflation_adjusted_pnl=ZERO,
        holding_period_days=0,
        holding_period_years=ZERO,
        cagr=None,
        is_active=False,
        error=error,
    )


__all__ = [
    "PnLContext",
    "RowCalculation",
    "NO_PRICE_ERROR",
    "money",
    "holding_period_days",
    "compute_cagr",
    "deflate",
    "needs_market_price",
    "calculate_row",
    "failed_row",
]
