"""Compute ESOP analytics for a grant CSV without the HTTP service."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

from esop_advisor.config import get_settings
from esop_advisor.core.errors import EsopAdvisorError
from esop_advisor.providers import InMemoryQuoteProvider, StaticFxProvider
from esop_advisor.schemas import AnalyticsEnvelope
from esop_advisor.services.analytics import build_engine
from esop_advisor.services.csv_upload import parse_csv
from esop_advisor.services.export import export_rows


async def _run(
    path: Path,
    fmt: str,
    as_of: date | None,
    inflation: Decimal | None,
    expected_cagr: Decimal | None = None,
    projection_years: int | None = None,
) -> str:
    settings = get_settings()
    engine = build_engine(
        settings,
        fx_provider=StaticFxProvider(settings.usd_inr_fallback_rate),
        quote_provider=InMemoryQuoteProvider(),
    )
    parsed = parse_csv(path.read_bytes())
    report = await engine.compute(
        parsed.records,
        as_of=as_of,
        inflation_rate=inflation,
        expected_cagr=expected_cagr,
        projection_years=projection_years,
    )
    if fmt == "csv":
        return export_rows(report.rows, "csv")
    report = report.with_columns(parsed.missing_columns, parsed.extra_columns)
    return AnalyticsEnvelope.success(report).model_dump_json(by_alias=True, indent=2)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Compute ESOP analytics for a grant CSV")
    parser.add_argument("--csv", required=True, type=Path, help="Grant CSV to analyse")
    parser.add_argument("--format", choices=("json", "csv"), default="json")
    parser.add_argument("--as-of", type=date.fromisoformat, default=None, help="Valuation date (YYYY-MM-DD)")
    parser.add_argument("--inflation", type=Decimal, default=None, help="Annual inflation rate, e.g. 0.055")
    parser.add_argument("--expected-cagr", type=Decimal, default=None, help="Projection growth rate, e.g. 0.12")
    parser.add_argument("--projection-years", type=int, default=None, help="Years to project")
    args = parser.parse_args(argv)

    try:
        output = asyncio.run(
            _run(
                args.csv,
                args.format,
                args.as_of,
                args.inflation,
                expected_cagr=args.expected_cagr,
                projection_years=args.projection_years,
            )
        )
    except EsopAdvisorError as exc:
        print(json.dumps(exc.to_payload(), indent=2), file=sys.stderr)
        return 1
    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
