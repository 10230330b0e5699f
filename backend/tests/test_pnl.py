"""Per-row PnL under the unified investment-based model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from esop_advisor.core.errors import ComputationError
from esop_advisor.services.normalizer import normalize
from esop_advisor.services.pnl import (
    NO_PRICE_ERROR,
    PnLContext,
    calculate_row,
    compute_cagr,
    deflate,
    holding_period_days,
)
from esop_advisor.services.records import GrantStatus, NormalizedRecord, PriceKind, PriceSource
from esop_advisor.services.tax import TaxRegion

AS_OF = date(2024, 6, 30)
CONTEXT = PnLContext(region=TaxRegion.USA, inflation_rate=Decimal("0"), as_of=AS_OF)


def _record(status: str, **overrides) -> NormalizedRecord:
    raw = {
        "ticker": "MSFT",
        "company": "Microsoft",
        "grantDate": "2021-06-30",
        "quantity": "500",
        "vested": "500",
        "exercisePrice": "220",
        "status": status,
    }
    raw.update(overrides)
    return normalize(raw)


def _csv(value: str) -> PriceSource:
    return PriceSource(kind=PriceKind.CSV, value=Decimal(value))


def test_vested_row_is_unrealized_on_vested_units():
    row = calculate_row(_record("Vested", vested="400"), _csv("415.75"), CONTEXT)

    assert row.cost_basis == Decimal("88000.00")
    assert row.current_value == Decimal("166300.00")
    assert row.unrealized_pnl == Decimal("78300.00")
    assert row.realized_pnl == Decimal("0")
    assert row.tax == Decimal("0")
    assert row.post_tax_pnl == row.unrealized_pnl
    assert row.price == _csv("415.75")
    assert row.is_active


def test_underwater_exercised_row_keeps_negative_pnl():
    row = calculate_row(
        _record("Exercised", ticker="AMZN", quantity="300", vested="300", exercisePrice="2100"),
        _csv("185.20"),
        CONTEXT,
    )

    assert row.unrealized_pnl == Decimal("-574440.00")
    assert row.is_active


def test_unvested_row_contributes_nothing():
    row = calculate_row(_record("Unvested", vested="0"), _csv("415.75"), CONTEXT)

    assert row.cost_basis == row.current_value == row.unrealized_pnl == Decimal("0")
    assert row.cagr is None
    assert row.is_active


def test_sold_row_is_realized_and_taxed():
    record = _record(
        "Sold",
        ticker="TSLA",
        grantDate="2023-01-01",
        quantity="100",
        vested="100",
        exercisePrice="180",
        salePrice="250",
        saleDate="2023-06-01",
    )
    row = calculate_row(record, None, CONTEXT)

    assert row.realized_pnl == Decimal("7000.00")
    assert row.unrealized_pnl == Decimal("0")
    assert row.holding_period_days == 151
    assert row.tax == Decimal("1680.00")
    assert row.post_tax_pnl == Decimal("5320.00")
    assert row.price == PriceSource(kind=PriceKind.CSV, value=Decimal("250"))


def test_sold_row_taxed_under_india_rules():
    record = _record(
        "Sold",
        ticker="TSLA",
        grantDate="2023-01-01",
        quantity="100",
        vested="100",
        exercisePrice="180",
        salePrice="250",
        saleDate="2023-06-01",
    )
    context = PnLContext(region=TaxRegion.INDIA, inflation_rate=Decimal("0"), as_of=AS_OF)

    assert calculate_row(record, None, context).tax == Decimal("1050.00")


def test_sold_row_without_sale_price_is_a_computation_error():
    record = _record("Sold")

    with pytest.raises(ComputationError):
        calculate_row(record, None, CONTEXT)


def test_vested_row_without_price_is_inactive_with_error():
    row = calculate_row(_record("Vested"), None, CONTEXT)

    assert not row.is_active
    assert row.error == NO_PRICE_ERROR
    assert row.cagr is None


def test_expired_and_lapsed_rows_are_excluded_without_error():
    for status in (GrantStatus.EXPIRED.value, GrantStatus.LAPSED.value):
        row = calculate_row(_record(status), _csv("415.75"), CONTEXT)
        assert not row.is_active
        assert row.error is None


def test_holding_period_runs_from_grant_date():
    assert holding_period_days(_record("Vested"), AS_OF) == 1096
    assert holding_period_days(_record("Vested", grantDate="2025-01-01"), AS_OF) == 0


def test_cagr_is_undefined_without_cost_or_time():
    assert compute_cagr(Decimal("100"), Decimal("0"), Decimal("1")) is None
    assert compute_cagr(Decimal("100"), Decimal("50"), Decimal("0")) is None
    assert compute_cagr(Decimal("121"), Decimal("100"), Decimal("2")) == Decimal("0.100000")


def test_inflation_adjustment_deflates_post_tax_pnl():
    assert deflate(Decimal("1000"), Decimal("0.05"), Decimal("0")) == Decimal("1000")
    assert deflate(Decimal("1102.5"), Decimal("0.05"), Decimal("2")) == Decimal("1000")

    context = PnLContext(region=TaxRegion.USA, inflation_rate=Decimal("0.05"), as_of=date(2023, 6, 30))
    row = calculate_row(_record("Vested", grantDate="2022-06-30"), _csv("230.5"), context)

    assert row.post_tax_pnl == Decimal("5250.00")
    assert row.holding_period_years == Decimal("1.00")
    assert row.inflation_adjusted_pnl == Decimal("5000.00")


def test_short_holding_period_leaves_cagr_undefined_but_values_row():
    context = PnLContext(region=TaxRegion.USA, inflation_rate=Decimal("0.032"), as_of=AS_OF)
    row = calculate_row(
        _record("Vested", ticker="SNOW", grantDate="2024-06-20", exercisePrice="10"),
        _csv("100"),
        context,
    )

    assert row.holding_period_days == 10
    assert row.unrealized_pnl == Decimal("45000.00")
    assert row.cagr is None
    assert row.is_active
    assert row.error is None


def test_sale_a_day_after_grant_is_realized_without_cagr():
    row = calculate_row(
        _record(
            "Sold",
            ticker="TSLA",
            grantDate="2024-06-01",
            quantity="100",
            vested="100",
            exercisePrice="180",
            salePrice="250",
            saleDate="2024-06-02",
        ),
        None,
        CONTEXT,
    )

    assert row.holding_period_days == 1
    assert row.realized_pnl == Decimal("7000.00")
    assert row.cagr is None
    assert row.is_active


def test_cagr_over_a_short_but_representable_period_is_still_reported():
    cagr = compute_cagr(Decimal("110"), Decimal("100"), Decimal("30") / Decimal("365"))

    assert cagr is not None
    assert cagr > Decimal("1")
