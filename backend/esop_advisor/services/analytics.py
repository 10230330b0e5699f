"""Analytics orchestration: validate, normalize, price, calculate, aggregate."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Sequence

from esop_advisor.config import EsopSettings
from esop_advisor.core.errors import ComputationError, PriceResolutionError, ValidationError
from esop_advisor.providers.fx import FxProvider
from esop_advisor.providers.quotes import Quote, QuoteProvider, resolve_quotes

from .aggregator import ChartSeries, PortfolioTotals, aggregate
from .normalizer import normalize_all
from .pnl import NO_PRICE_ERROR, ZERO, PnLContext, RowCalculation, calculate_row, failed_row, needs_market_price
from .projection import Projection, build_projection
from .records import NormalizedRecord, PriceKind, PriceSource, RawRecord
from .region import detect_batch_region
from .tax import TAX_RATES, TaxRates, TaxRegion
from .validator import ValidationResult, validate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticsConfig:
    """Engine configuration, built once and passed in at construction."""

    inflation_rates: dict[TaxRegion, Decimal] = field(
        default_factory=lambda: {TaxRegion.INDIA: Decimal("0.055"), TaxRegion.USA: Decimal("0.032")}
    )
    quote_timeout_seconds: float = 10.0
    prefer_live_prices: bool = False
    region_mix_tolerance: float = 0.0
    projection_years: int = 10

    @classmethod
    def from_settings(cls, settings: EsopSettings) -> "AnalyticsConfig":
        return cls(
            inflation_rates={
                TaxRegion.INDIA: settings.inflation_rate_india,
                TaxRegion.USA: settings.inflation_rate_usa,
            },
            quote_timeout_seconds=settings.quote_timeout_seconds,
            prefer_live_prices=settings.prefer_live_prices,
            region_mix_tolerance=settings.region_mix_tolerance,
            projection_years=settings.projection_years,
        )


@dataclass(frozen=True)
class AnalyticsMeta:
    tax_rates: TaxRates
    inflation_rate: Decimal
    price_fetch_timestamp: datetime
    fx_timestamp: datetime
    fx_source: str
    as_of: date
    warnings: list[str]
    missing_columns: list[str] = field(default_factory=list)
    extra_columns: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AnalyticsReport:
    region: TaxRegion
    base_currency: str
    fx_rate: Decimal
    totals: PortfolioTotals
    rows: list[RowCalculation]
    charts: ChartSeries
    meta: AnalyticsMeta
    projection: Projection

    def with_columns(self, missing_columns: Sequence[str], extra_columns: Sequence[str]) -> "AnalyticsReport":
        """Attach the header report of the upload the records came from."""

        meta = replace(self.meta, missing_columns=list(missing_columns), extra_columns=list(extra_columns))
        return replace(self, meta=meta)


class AnalyticsEngine:
    """Run the analytics pipeline over one batch of raw grant records."""

    def __init__(
        self,
        config: AnalyticsConfig,
        *,
        fx_provider: FxProvider,
        quote_provider: QuoteProvider | None = None,
    ):
        self.config = config
        self.fx_provider = fx_provider
        self.quote_provider = quote_provider

    def check(self, raw_records: Sequence[RawRecord]) -> ValidationResult:
        """Validate ``raw_records`` and raise :class:`ValidationError` on any row error."""

        result = validate(raw_records)
        if not result.is_valid:
            raise ValidationError(
                "CSV validation failed",
                errors=result.errors,
                warnings=result.warnings,
                summary=result.summary.as_dict(),
            )
        return result

    async def compute(
        self,
        raw_records: Sequence[RawRecord],
        *,
        as_of: date | None = None,
        inflation_rate: Decimal | None = None,
        expected_cagr: Decimal | None = None,
        monthly_contribution: Decimal = ZERO,
        projection_years: int | None = None,
    ) -> AnalyticsReport:
        validation = self.check(raw_records)
        records = normalize_all(raw_records)
        detection = detect_batch_region(
            [record.ticker for record in records],
            tolerance=self.config.region_mix_tolerance,
        )
        region = detection.region
        logger.info("Computing analytics for %d records, region=%s", len(records), region.value)

        (prices, price_errors), fx = await asyncio.gather(
            self._resolve_prices(records),
            self.fx_provider.usd_inr(),
        )
        price_fetch_timestamp = datetime.now(timezone.utc)

        as_of = as_of or date.today()
        rate = self.config.inflation_rates[region] if inflation_rate is None else inflation_rate
        context = PnLContext(region=region, inflation_rate=rate, as_of=as_of)
        rows = [
            self._calculate(record, prices.get(index), price_errors.get(record.ticker), context)
            for index, record in enumerate(records)
        ]
        result = aggregate(rows, as_of)
        projection = build_projection(
            result.totals.total_current_value,
            expected_cagr=result.totals.portfolio_cagr if expected_cagr is None else expected_cagr,
            inflation_rate=rate,
            horizon_years=projection_years or self.config.projection_years,
            monthly_contribution=monthly_contribution,
        )

        return AnalyticsReport(
            region=region,
            base_currency=detection.currency,
            fx_rate=fx.rate,
            totals=result.totals,
            rows=rows,
            charts=result.charts,
            meta=AnalyticsMeta(
                tax_rates=TAX_RATES[region],
                inflation_rate=rate,
                price_fetch_timestamp=price_fetch_timestamp,
                fx_timestamp=fx.timestamp,
                fx_source=fx.source,
                as_of=as_of,
                warnings=validation.warnings,
            ),
            projection=projection,
        )

    def _calculate(
        self,
        record: NormalizedRecord,
        price: PriceSource | None,
        price_error: PriceResolutionError | None,
        context: PnLContext,
    ) -> RowCalculation:
        try:
            row = calculate_row(record, price, context)
        except ComputationError as exc:
            logger.exception("Failed to compute row for %s", record.ticker)
            return failed_row(record, exc.message)
        except ArithmeticError as exc:
            error = ComputationError(f"Arithmetic error computing {record.ticker}: {exc!r}")
            logger.exception("Failed to compute row for %s", record.ticker)
            return failed_row(record, error.message)
        if row.error == NO_PRICE_ERROR and price_error is not None:
            row = replace(row, error=f"{NO_PRICE_ERROR}: {price_error.reason}")
        return row

    async def _resolve_prices(
        self, records: Sequence[NormalizedRecord]
    ) -> tuple[dict[int, PriceSource], dict[str, PriceResolutionError]]:
        """Pick a price per row that needs one, quoting tickers without a CSV price."""

        priced = [(index, record) for index, record in enumerate(records) if needs_market_price(record)]
        lookup = [
            record.ticker
            for _, record in priced
            if self.config.prefer_live_prices or not record.has_csv_price
        ]
        quotes: dict[str, Quote | PriceResolutionError] = {}
        if lookup and self.quote_provider is not None:
            quotes = await resolve_quotes(
                self.quote_provider,
                lookup,
                timeout_seconds=self.config.quote_timeout_seconds,
            )
        elif lookup:
            quotes = {
                ticker: PriceResolutionError(ticker, "live price lookup is not configured")
                for ticker in lookup
            }

        prices: dict[int, PriceSource] = {}
        errors: dict[str, PriceResolutionError] = {}
        for index, record in priced:
            quote = quotes.get(record.ticker)
            if isinstance(quote, Quote):
                prices[index] = PriceSource(kind=PriceKind.LIVE, value=quote.price)
            elif record.current_price is not None:
                prices[index] = PriceSource(kind=PriceKind.CSV, value=record.current_price)
            elif record.fmv is not None:
                prices[index] = PriceSource(kind=PriceKind.FALLBACK, value=record.fmv)
            elif isinstance(quote, PriceResolutionError):
                errors[record.ticker] = quote
        return prices, errors


def build_engine(
    settings: EsopSettings,
    *,
    fx_provider: FxProvider,
    quote_provider: QuoteProvider | None = None,
) -> AnalyticsEngine:
    return AnalyticsEngine(
        AnalyticsConfig.from_settings(settings),
        fx_provider=fx_provider,
        quote_provider=quote_provider,
    )


__all__ = [
    "AnalyticsConfig",
    "AnalyticsMeta",
    "AnalyticsReport",
    "AnalyticsEngine",
    "build_engine",
]
