"""Projected growth of the portfolio's current value.

The projection compounds the current value monthly at an expected annual rate,
adds an optional fixed monthly contribution, and deflates each year-end value
by the batch's inflation rate. The expected rate defaults to the portfolio
CAGR.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, Overflow, localcontext

from .pnl import ZERO, deflate, money

logger = logging.getLogger(__name__)

PERIODS_PER_YEAR = 12


@dataclass(frozen=True)
class ProjectionPoint:
    year: int
    value: Decimal
    real_value: Decimal


@dataclass(frozen=True)
class Projection:
    expected_cagr: Decimal | None
    inflation_rate: Decimal
    horizon_years: int
    principal: Decimal
    monthly_contribution: Decimal
    series: list[ProjectionPoint] = field(default_factory=list)


def future_value(
    principal: Decimal,
    contribution: Decimal,
    rate: Decimal,
    years: int,
    periods_per_year: int = PERIODS_PER_YEAR,
) -> Decimal:
    """Value after ``years`` of compounding plus a contribution every period."""

    periods = periods_per_year * years
    if rate == 0:
        return principal + contribution * periods
    step = rate / periods_per_year
    growth = (1 + step) ** periods
    return principal * growth + contribution * (growth - 1) / step


def build_projection(
    principal: Decimal,
    *,
    expected_cagr: Decimal | None,
    inflation_rate: Decimal,
    horizon_years: int,
    monthly_contribution: Decimal = ZERO,
) -> Projection:
    """Yearly nominal and real values for years ``1..horizon_years``.

    Without an expected rate the series is empty. The series stops at the
    last year whose value fits the working precision.
    """

    series: list[ProjectionPoint] = []
    if expected_cagr is not None:
        with localcontext() as ctx:
            ctx.traps[InvalidOperation] = True
            ctx.traps[Overflow] = True
            for year in range(1, horizon_years + 1):
                try:
                    value = future_value(principal, monthly_contribution, expected_cagr, year)
                    real_value = deflate(value, inflation_rate, Decimal(year))
                    point = ProjectionPoint(year=year, value=money(value), real_value=money(real_value))
                except (InvalidOperation, Overflow):
                    logger.warning("Projection at %s stops after year %d", expected_cagr, year - 1)
                    break
                series.append(point)
    return Projection(
        expected_cagr=expected_cagr,
        inflation_rate=inflation_rate,
        horizon_years=horizon_years,
        principal=principal,
        monthly_contribution=monthly_contribution,
        series=series,
    )


__all__ = [
    "PERIODS_PER_YEAR",
    "ProjectionPoint",
    "Projection",
    "future_value",
    "build_projection",
]
