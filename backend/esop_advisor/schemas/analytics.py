"""Pydantic schemas for the analytics envelope."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..services.aggregator import ChartSeries, PortfolioTotals
from ..services.analytics import AnalyticsReport
from ..services.pnl import RowCalculation
from ..services.projection import Projection
from ..services.tax import TaxRates


def _float(value: Decimal | None) -> float | None:
    return None if value is None else float(value)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyticsRequest(CamelModel):
    records: list[dict[str, Any]] = Field(..., description="Raw grant records as uploaded")
    inflation_rate: Decimal | None = Field(default=None, ge=0, description="Overrides the regional default")
    as_of: date | None = Field(default=None, description="Valuation date; defaults to today")
    expected_cagr: Decimal | None = Field(
        default=None,
        ge=-1,
        alias="expectedCAGR",
        description="Annual growth rate for the projection; defaults to the portfolio CAGR",
    )
    monthly_contribution: Decimal = Field(default=Decimal("0"), ge=0)
    projection_years: int | None = Field(default=None, ge=1, le=50)

    def compute_options(self) -> dict[str, Any]:
        return {
            "as_of": self.as_of,
            "inflation_rate": self.inflation_rate,
            "expected_cagr": self.expected_cagr,
            "monthly_contribution": self.monthly_contribution,
            "projection_years": self.projection_years,
        }


class TaxRatesSchema(CamelModel):
    bargain_element: float
    short_term: float
    long_term: float
    long_term_exemption: float
    holding_period_months: int
    currency: str

    @classmethod
    def from_rates(cls, rates: TaxRates) -> "TaxRatesSchema":
        return cls(
            bargain_element=float(rates.bargain_element),
            short_term=float(rates.short_term),
            long_term=float(rates.long_term),
            long_term_exemption=float(rates.long_term_exemption),
            holding_period_months=rates.holding_period_months,
            currency=rates.currency,
        )


class RowCalculationSchema(CamelModel):
    ticker: str
    company: str
    status: str
    grant_date: date
    quantity: float
    vested: float
    exercise_price: float
    price_source: str | None = None
    price_used: float | None = None
    sale_price: float | None = None
    sale_date: date | None = None
    cost_basis: float
    current_value: float
    unrealized_pnl: float = Field(alias="unrealizedPnL")
    realized_pnl: float = Field(alias="realizedPnL")
    total_pnl: float = Field(alias="totalPnL")
    tax: float
    post_tax_pnl: float = Field(alias="postTaxPnL")
    inflation_adjusted_pnl: float = Field(alias="inflationAdjustedPnL")
    holding_period_days: int
    holding_period_years: float
    cagr: float | None = None
    is_active: bool
    error: str | None = None

    @classmethod
    def from_row(cls, row: RowCalculation) -> "RowCalculationSchema":
        return cls(
            ticker=row.ticker,
            company=row.company,
            status=row.status.value,
            grant_date=row.grant_date,
            quantity=float(row.quantity),
            vested=float(row.vested),
            exercise_price=float(row.exercise_price),
            price_source=row.price.kind.value if row.price else None,
            price_used=_float(row.price.value) if row.price else None,
            sale_price=_float(row.sale_price),
            sale_date=row.sale_date,
            cost_basis=float(row.cost_basis),
            current_value=float(row.current_value),
            unrealized_pnl=float(row.unrealized_pnl),
            realized_pnl=float(row.realized_pnl),
            total_pnl=float(row.total_pnl),
            tax=float(row.tax),
            post_tax_pnl=float(row.post_tax_pnl),
            inflation_adjusted_pnl=float(row.inflation_adjusted_pnl),
            holding_period_days=row.holding_period_days,
            holding_period_years=float(row.holding_period_years),
            cagr=_float(row.cagr),
            is_active=row.is_active,
            error=row.error,
        )


class PortfolioTotalsSchema(CamelModel):
    total_realized_pnl: float = Field(alias="totalRealizedPnL")
    total_unrealized_pnl: float = Field(alias="totalUnrealizedPnL")
    total_pnl: float = Field(alias="totalPnL")
    total_tax: float
    total_post_tax_pnl: float = Field(alias="totalPostTaxPnL")
    total_inflation_adjusted_pnl: float = Field(alias="totalInflationAdjustedPnL")
    total_cost_basis: float
    total_current_value: float
    portfolio_cagr: float | None = Field(default=None, alias="portfolioCAGR")
    active_rows: int
    inactive_rows: int

    @classmethod
    def from_totals(cls, totals: PortfolioTotals) -> "PortfolioTotalsSchema":
        return cls(
            total_realized_pnl=float(totals.total_realized_pnl),
            total_unrealized_pnl=float(totals.total_unrealized_pnl),
            total_pnl=float(totals.total_pnl),
            total_tax=float(totals.total_tax),
            total_post_tax_pnl=float(totals.total_post_tax_pnl),
            total_inflation_adjusted_pnl=float(totals.total_inflation_adjusted_pnl),
            total_cost_basis=float(totals.total_cost_basis),
            total_current_value=float(totals.total_current_value),
            portfolio_cagr=_float(totals.portfolio_cagr),
            active_rows=totals.active_rows,
            inactive_rows=totals.inactive_rows,
        )


class YearQuantitySchema(CamelModel):
    year: int
    quantity: float


class MonthRealizedSchema(CamelModel):
    month: str
    realized_pnl: float = Field(alias="realizedPnL")


class YearPnLSchema(CamelModel):
    year: int
    raw_unrealized_pnl: float = Field(alias="rawUnrealizedPnL")
    post_tax_pnl: float = Field(alias="postTaxPnL")
    inflation_adjusted_pnl: float = Field(alias="inflationAdjustedPnL")


class ChartSeriesSchema(CamelModel):
    esops_per_year: list[YearQuantitySchema] = Field(default_factory=list, alias="esopsPerYear")
    realized_pnl_timeline: list[MonthRealizedSchema] = Field(default_factory=list, alias="realizedPnLTimeline")
    unrealized_vs_post_tax_vs_inflation: list[YearPnLSchema] = Field(
        default_factory=list, alias="unrealizedVsPostTaxVsInflation"
    )

    @classmethod
    def from_charts(cls, charts: ChartSeries) -> "ChartSeriesSchema":
        return cls(
            esops_per_year=[
                YearQuantitySchema(year=item.year, quantity=float(item.quantity)) for item in charts.esops_per_year
            ],
            realized_pnl_timeline=[
                MonthRealizedSchema(month=item.month, realized_pnl=float(item.realized_pnl))
                for item in charts.realized_pnl_timeline
            ],
            unrealized_vs_post_tax_vs_inflation=[
                YearPnLSchema(
                    year=item.year,
                    raw_unrealized_pnl=float(item.raw_unrealized_pnl),
                    post_tax_pnl=float(item.post_tax_pnl),
                    inflation_adjusted_pnl=float(item.inflation_adjusted_pnl),
                )
                for item in charts.unrealized_vs_post_tax_vs_inflation
            ],
        )


class ProjectionPointSchema(CamelModel):
    year: int
    value: float
    real_value: float


class ProjectionSchema(CamelModel):
    expected_cagr: float | None = Field(default=None, alias="expectedCAGR")
    inflation_rate: float
    horizon_years: int
    principal: float
    monthly_contribution: float
    series: list[ProjectionPointSchema] = Field(default_factory=list)

    @classmethod
    def from_projection(cls, projection: Projection) -> "ProjectionSchema":
        return cls(
            expected_cagr=_float(projection.expected_cagr),
            inflation_rate=float(projection.inflation_rate),
            horizon_years=projection.horizon_years,
            principal=float(projection.principal),
            monthly_contribution=float(projection.monthly_contribution),
            series=[
                ProjectionPointSchema(year=point.year, value=float(point.value), real_value=float(point.real_value))
                for point in projection.series
            ],
        )


class AnalyticsMetaSchema(CamelModel):
    tax_rates_used: TaxRatesSchema
    inflation_rate: float
    price_fetch_timestamp: datetime
    fx_timestamp: datetime
    fx_source: str
    warnings: list[str] = Field(default_factory=list)
    as_of: date
    missing_columns: list[str] = Field(default_factory=list)
    extra_columns: list[str] = Field(default_factory=list)


class AnalyticsReportSchema(CamelModel):
    region: str
    base_currency: str
    fx_rate: float
    totals: PortfolioTotalsSchema
    per_row_calculations: list[RowCalculationSchema]
    charts: ChartSeriesSchema
    meta: AnalyticsMetaSchema
    projection: ProjectionSchema

    @classmethod
    def from_report(cls, report: AnalyticsReport) -> "AnalyticsReportSchema":
        return cls(
            region=report.region.value,
            base_currency=report.base_currency,
            fx_rate=float(report.fx_rate),
            totals=PortfolioTotalsSchema.from_totals(report.totals),
            per_row_calculations=[RowCalculationSchema.from_row(row) for row in report.rows],
            charts=ChartSeriesSchema.from_charts(report.charts),
            meta=AnalyticsMetaSchema(
                tax_rates_used=TaxRatesSchema.from_rates(report.meta.tax_rates),
                inflation_rate=float(report.meta.inflation_rate),
                price_fetch_timestamp=report.meta.price_fetch_timestamp,
                fx_timestamp=report.meta.fx_timestamp,
                fx_source=report.meta.fx_source,
                warnings=list(report.meta.warnings),
                as_of=report.meta.as_of,
                missing_columns=list(report.meta.missing_columns),
                extra_columns=list(report.meta.extra_columns),
            ),
            projection=ProjectionSchema.from_projection(report.projection),
        )


class AnalyticsEnvelope(CamelModel):
    status: Literal["success", "error"] = "success"
    data: AnalyticsReportSchema | None = None
    message: str | None = None
    code: str | None = None

    @classmethod
    def success(cls, report: AnalyticsReport) -> "AnalyticsEnvelope":
        return cls(status="success", data=AnalyticsReportSchema.from_report(report))


class ErrorEnvelope(CamelModel):
    status: Literal["error"] = "error"
    message: str
    code: str
    errors: list[str] | None = None
    warnings: list[str] | None = None
    summary: dict[str, Any] | None = None


__all__ = [
    "AnalyticsRequest",
    "TaxRatesSchema",
    "RowCalculationSchema",
    "PortfolioTotalsSchema",
    "ChartSeriesSchema",
    "ProjectionPointSchema",
    "ProjectionSchema",
    "AnalyticsMetaSchema",
    "AnalyticsReportSchema",
    "AnalyticsEnvelope",
    "ErrorEnvelope",
]
