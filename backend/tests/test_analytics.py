"""End-to-end analytics engine runs."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, Overflow

import pytest

from esop_advisor.core.errors import MixedRegionError, ValidationError
from esop_advisor.providers import InMemoryQuoteProvider, StaticFxProvider
from esop_advisor.services import analytics as analytics_module
from esop_advisor.services.analytics import AnalyticsConfig, AnalyticsEngine
from esop_advisor.services.records import PriceKind
from esop_advisor.services.tax import TaxRegion

AS_OF = date(2024, 6, 30)


def scenario_records():
    return [
        {"ticker": "AAPL", "company": "Apple", "grantDate": "2023-02-01", "quantity": "1000", "vested": "0",
         "exercisePrice": "150", "currentPrice": "228.50", "status": "Unvested"},
        {"ticker": "MSFT", "company": "Microsoft", "grantDate": "2020-05-15", "quantity": "500", "vested": "500",
         "exercisePrice": "220", "currentPrice": "415.75", "status": "Vested"},
        {"ticker": "GOOG", "company": "Alphabet", "grantDate": "2023-08-01", "quantity": "200", "vested": "0",
         "exercisePrice": "1800", "currentPrice": "142.30", "status": "Unvested"},
        {"ticker": "AMZN", "company": "Amazon", "grantDate": "2021-09-10", "quantity": "300", "vested": "300",
         "exercisePrice": "2100", "currentPrice": "185.20", "status": "Exercised"},
    ]


def _engine(quotes=None, **config) -> AnalyticsEngine:
    return AnalyticsEngine(
        AnalyticsConfig(**config),
        fx_provider=StaticFxProvider(Decimal("83")),
        quote_provider=InMemoryQuoteProvider(quotes),
    )


async def test_worked_example():
    report = await _engine().compute(scenario_records(), as_of=AS_OF)

    assert report.region is TaxRegion.USA
    assert report.base_currency == "USD"
    assert report.fx_rate == Decimal("83")
    assert report.totals.total_cost_basis == Decimal("740000")
    assert report.totals.total_current_value == Decimal("263435")
    assert report.totals.total_unrealized_pnl == Decimal("-476565")
    assert report.totals.total_realized_pnl == Decimal("0")
    assert report.totals.total_tax == Decimal("0")
    assert report.meta.inflation_rate == Decimal("0.032")
    assert report.meta.as_of == AS_OF
    assert report.meta.fx_source == "static"
    assert all(row.price.kind is PriceKind.CSV for row in report.rows if row.price)


async def test_csv_prices_skip_live_lookup():
    engine = _engine({"MSFT": "999"})

    await engine.compute(scenario_records(), as_of=AS_OF)

    assert engine.quote_provider.calls == []


async def test_live_lookup_for_rows_without_price():
    records = scenario_records()
    records[1]["currentPrice"] = ""
    engine = _engine({"MSFT": "420"})

    report = await engine.compute(records, as_of=AS_OF)
    msft = report.rows[1]

    assert engine.quote_provider.calls == ["MSFT"]
    assert msft.price.kind is PriceKind.LIVE
    assert msft.unrealized_pnl == Decimal("100000.00")


async def test_fmv_is_used_as_fallback_price():
    records = scenario_records()
    records[1]["currentPrice"] = ""
    records[1]["fmv"] = "400"

    report = await _engine().compute(records, as_of=AS_OF)

    assert report.rows[1].price.kind is PriceKind.FALLBACK
    assert report.rows[1].unrealized_pnl == Decimal("90000.00")


async def test_prefer_live_prices_overrides_csv():
    engine = _engine({"MSFT": "420", "AMZN": "200"}, prefer_live_prices=True)

    report = await engine.compute(scenario_records(), as_of=AS_OF)

    assert report.rows[1].price.kind is PriceKind.LIVE
    assert report.rows[3].price.value == Decimal("200")


async def test_failed_lookup_degrades_only_that_row():
    records = scenario_records()
    records[1]["currentPrice"] = ""

    report = await _engine().compute(records, as_of=AS_OF)
    msft = report.rows[1]

    assert not msft.is_active
    assert msft.error == "No price data available: no quote available"
    assert report.totals.inactive_rows == 1
    assert report.totals.total_cost_basis == Decimal("630000")


async def test_invalid_batch_raises_with_all_row_messages():
    records = scenario_records()
    records[0]["vested"] = "2000"
    records[2]["ticker"] = ""

    with pytest.raises(ValidationError) as excinfo:
        await _engine().compute(records, as_of=AS_OF)

    assert excinfo.value.errors == [
        "Row 1: vested (2000) cannot exceed quantity (1000)",
        "Row 3: Missing required field 'ticker'",
    ]
    assert excinfo.value.summary["invalidRecords"] == 2


async def test_mixed_regions_are_rejected():
    records = scenario_records()
    records[0]["ticker"] = "INFY.NS"

    with pytest.raises(MixedRegionError):
        await _engine().compute(records, as_of=AS_OF)


async def test_india_batch_uses_india_rates_and_inflation():
    records = [
        {"ticker": "INFY.NS", "company": "Infosys", "grantDate": "2022-01-01", "quantity": "100", "vested": "100",
         "exercisePrice": "1000", "salePrice": "1500", "saleDate": "2023-06-01", "status": "Sold"},
    ]

    report = await _engine().compute(records, as_of=AS_OF)

    assert report.region is TaxRegion.INDIA
    assert report.base_currency == "INR"
    assert report.meta.inflation_rate == Decimal("0.055")
    assert report.meta.tax_rates.bargain_element == Decimal("0.30")
    # 516 days held: the 50000 gain is long-term and within the exemption
    assert report.rows[0].realized_pnl == Decimal("50000.00")
    assert report.rows[0].tax == Decimal("0.00")


async def test_inflation_override():
    report = await _engine().compute(scenario_records(), as_of=AS_OF, inflation_rate=Decimal("0"))

    assert report.totals.total_inflation_adjusted_pnl == report.totals.total_post_tax_pnl


async def test_days_old_grants_compute_without_failing_the_batch():
    records = [
        {"ticker": "SNOW", "company": "Snowflake", "grantDate": "2024-06-20", "quantity": "500", "vested": "500",
         "exercisePrice": "10", "currentPrice": "100", "status": "Vested"},
        {"ticker": "TSLA", "company": "Tesla", "grantDate": "2024-06-01", "quantity": "100", "vested": "100",
         "exercisePrice": "180", "salePrice": "250", "saleDate": "2024-06-02", "status": "Sold"},
    ]

    report = await _engine().compute(records, as_of=AS_OF)

    assert [row.is_active for row in report.rows] == [True, True]
    assert [row.cagr for row in report.rows] == [None, None]
    assert report.totals.total_unrealized_pnl == Decimal("45000.00")
    assert report.totals.total_realized_pnl == Decimal("7000.00")
    assert report.totals.inactive_rows == 0


async def test_arithmetic_failure_excludes_only_that_row(monkeypatch):
    real_calculate_row = analytics_module.calculate_row

    def failing_calculate_row(record, price, context):
        if record.ticker == "MSFT":
            raise Overflow("exponent too large")
        return real_calculate_row(record, price, context)

    monkeypatch.setattr(analytics_module, "calculate_row", failing_calculate_row)

    report = await _engine().compute(scenario_records(), as_of=AS_OF)
    msft = report.rows[1]

    assert not msft.is_active
    assert msft.error.startswith("Arithmetic error computing MSFT")
    assert report.totals.inactive_rows == 1
    assert all(row.is_active for index, row in enumerate(report.rows) if index != 1)


async def test_projection_defaults_to_portfolio_cagr():
    report = await _engine(projection_years=4).compute(scenario_records(), as_of=AS_OF)

    assert report.projection.expected_cagr == report.totals.portfolio_cagr
    assert report.projection.principal == report.totals.total_current_value
    assert report.projection.inflation_rate == Decimal("0.032")
    assert len(report.projection.series) == 4


async def test_projection_with_supplied_rate_and_contribution():
    report = await _engine().compute(
        scenario_records(),
        as_of=AS_OF,
        inflation_rate=Decimal("0"),
        expected_cagr=Decimal("0"),
        monthly_contribution=Decimal("100"),
        projection_years=2,
    )

    assert [(point.year, point.value, point.real_value) for point in report.projection.series] == [
        (1, Decimal("264635.00"), Decimal("264635.00")),
        (2, Decimal("265835.00"), Decimal("265835.00")),
    ]
