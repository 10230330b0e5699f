"""Simplified India/US tax approximations for realized ESOP gains.

These are flat rates, not bracket-aware tax law. Only sold positions are taxed;
see :mod:`esop_advisor.services.pnl`.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

ZERO = Decimal("0")


class TaxRegion(str, Enum):
    INDIA = "india"
    USA = "usa"


@dataclass(frozen=True)
class TaxRates:
    bargain_element: Decimal
    short_term: Decimal
    long_term: Decimal
    long_term_exemption: Decimal
    holding_period_months: int
    currency: str

    @property
    def long_term_after_days(self) -> int:
        return self.holding_period_months * 30


TAX_RATES: dict[TaxRegion, TaxRates] = {
    TaxRegion.INDIA: TaxRates(
        bargain_element=Decimal("0.30"),
        short_term=Decimal("0.15"),
        long_term=Decimal("0.10"),
        long_term_exemption=Decimal("100000"),
        holding_period_months=12,
        currency="INR",
    ),
    TaxRegion.USA: TaxRates(
        bargain_element=Decimal("0.24"),
        short_term=Decimal("0.24"),
        long_term=Decimal("0.15"),
        long_term_exemption=ZERO,
        holding_period_months=12,
        currency="USD",
    ),
}


@dataclass(frozen=True)
class GainSplit:
    bargain_element: Decimal
    short_term_gain: Decimal
    long_term_gain: Decimal
    total_gain: Decimal


def split_gain(
    quantity: Decimal,
    exercise_price: Decimal,
    fmv: Decimal | None,
    sale_price: Decimal,
    *,
    holding_period_days: int,
    region: TaxRegion,
) -> GainSplit:
    """Decompose a sale into bargain element, short-term and long-term gain.

    ``fmv`` is the fair market value at exercise; without one the exercise
    price is used, which leaves no bargain element. The post-exercise gain is
    short-term until the region's holding period is reached and long-term
    afterwards.
    """

    fmv_value = exercise_price if fmv is None else fmv
    total_gain = (sale_price - exercise_price) * quantity
    bargain = max(ZERO, (fmv_value - exercise_price) * quantity)
    if holding_period_days < TAX_RATES[region].long_term_after_days:
        short_term = max(ZERO, (sale_price - fmv_value) * quantity)
    else:
        short_term = ZERO
    long_term = max(ZERO, total_gain - bargain - short_term)
    return GainSplit(
        bargain_element=bargain,
        short_term_gain=short_term,
        long_term_gain=long_term,
        total_gain=total_gain,
    )


def tax(
    bargain_element: Decimal,
    short_term_gain: Decimal,
    long_term_gain: Decimal,
    region: TaxRegion,
) -> Decimal:
    """Tax owed on the three gain components under ``region``'s flat rates."""

    rates = TAX_RATES[region]
    taxable_long_term = max(ZERO, long_term_gain - rates.long_term_exemption)
    return (
        rates.bargain_element * bargain_element
        + rates.short_term * short_term_gain
        + rates.long_term * taxable_long_term
    )


def tax_on_split(split: GainSplit, region: TaxRegion) -> Decimal:
    return tax(split.bargain_element, split.short_term_gain, split.long_term_gain, region)


__all__ = [
    "TaxRegion",
    "TaxRates",
    "TAX_RATES",
    "GainSplit",
    "split_gain",
    "tax",
    "tax_on_split",
]
