"""Portfolio totals and chart series over per-row calculations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Sequence

from .pnl import DAYS_PER_YEAR, ZERO, RowCalculation, compute_cagr


@dataclass(frozen=True)
class PortfolioTotals:
    total_realized_pnl: Decimal = ZERO
    total_unrealized_pnl: Decimal = ZERO
    total_pnl: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_post_tax_pnl: Decimal = ZERO
    total_inflation_adjusted_pnl: Decimal = ZERO
    total_cost_basis: Decimal = ZERO
    total_current_value: Decimal = ZERO
    portfolio_cagr: Decimal | None = None
    active_rows: int = 0
    inactive_rows: int = 0


@dataclass(frozen=True)
class YearQuantity:
    year: int
    quantity: Decimal


@dataclass(frozen=True)
class MonthRealized:
    month: str
    realized_pnl: Decimal


@dataclass(frozen=True)
class YearPnL:
    year: int
    raw_unrealized_pnl: Decimal
    post_tax_pnl: Decimal
    inflation_adjusted_pnl: Decimal


@dataclass(frozen=True)
class ChartSeries:
    esops_per_year: list[YearQuantity] = field(default_factory=list)
    realized_pnl_timeline: list[MonthRealized] = field(default_factory=list)
    unrealized_vs_post_tax_vs_inflation: list[YearPnL] = field(default_factory=list)


@dataclass(frozen=True)
class Aggregate:
    totals: PortfolioTotals
    charts: ChartSeries


def _portfolio_cagr(active: Sequence[RowCalculation], cost: Decimal, value: Decimal, as_of: date | None) -> Decimal | None:
    if not active or as_of is None:
        return None
    earliest = min(row.grant_date for row in active)
    years = Decimal(max(0, (as_of - earliest).days)) / DAYS_PER_YEAR
    return compute_cagr(value, cost, years)


def compute_totals(rows: Sequence[RowCalculation], as_of: date | None = None) -> PortfolioTotals:
    active = [row for row in rows if row.is_active]
    realized = sum((row.realized_pnl for row in active), ZERO)
    unrealized = sum((row.unrealized_pnl for row in active), ZERO)
    cost = sum((row.cost_basis for row in active), ZERO)
    value = sum((row.current_value for row in active), ZERO)
    return PortfolioTotals(
        total_realized_pnl=realized,
        total_unrealized_pnl=unrealized,
        total_pnl=realized + unrealized,
        total_tax=sum((row.tax for row in active), ZERO),
        total_post_tax_pnl=sum((row.post_tax_pnl for row in active), ZERO),
        total_inflation_adjusted_pnl=sum((row.inflation_adjusted_pnl for row in active), ZERO),
        total_cost_basis=cost,
        total_current_value=value,
        portfolio_cagr=_portfolio_cagr(active, cost, value, as_of),
        active_rows=len(active),
        inactive_rows=len(rows) - len(active),
    )


def build_charts(rows: Sequence[RowCalculation]) -> ChartSeries:
    """Group active rows into chart series, keeping first-seen key order."""

    per_year: dict[int, Decimal] = {}
    per_month: dict[str, Decimal] = {}
    pnl_by_year: dict[int, list[Decimal]] = {}

    for row in rows:
        if not row.is_active:
            continue
        year = row.grant_date.year
        per_year[year] = per_year.get(year, ZERO) + row.quantity
        if row.sale_date is not None:
            month = row.sale_date.strftime("%Y-%m")
            per_month[month] = per_month.get(month, ZERO) + row.realized_pnl
        bucket = pnl_by_year.setdefault(year, [ZERO, ZERO, ZERO])
        bucket[0] += row.unrealized_pnl
        bucket[1] += row.post_tax_pnl
        bucket[2] += row.inflation_adjusted_pnl

    return ChartSeries(
        esops_per_year=[YearQuantity(year=y, quantity=q) for y, q in per_year.items()],
        realized_pnl_timeline=[MonthRealized(month=m, realized_pnl=v) for m, v in per_month.items()],
        unrealized_vs_post_tax_vs_inflation=[
            YearPnL(year=y, raw_unrealized_pnl=u, post_tax_pnl=p, inflation_adjusted_pnl=i)
            for y, (u, p, i) in pnl_by_year.items()
        ],
    )


def aggregate(rows: Sequence[RowCalculation], as_of: date | None = None) -> Aggregate:
    """Fold per-row results into totals and charts; pure and idempotent.

    ``as_of`` anchors the portfolio CAGR period, which runs from the earliest
    active grant date. Without it the portfolio CAGR is reported as ``None``.
    """

    return Aggregate(totals=compute_totals(rows, as_of), charts=build_charts(rows))


__all__ = [
    "PortfolioTotals",
    "YearQuantity",
    "MonthRealized",
    "YearPnL",
    "ChartSeries",
    "Aggregate",
    "compute_totals",
    "build_charts",
    "aggregate",
]
