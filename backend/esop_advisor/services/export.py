"""Serialize per-row calculations to flat CSV or JSON and load them back.

Values are written as exact strings (Decimals unrounded, ISO dates) so a
loaded sequence compares equal to the exported one field for field.
"""

from __future__ import annotations

import io
import json
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

import pandas as pd

from .pnl import RowCalculation
from .records import GrantStatus, PriceKind, PriceSource


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


EXPORT_COLUMNS = (
    "ticker",
    "company",
    "status",
    "grantDate",
    "quantity",
    "vested",
    "exercisePrice",
    "priceSource",
    "priceUsed",
    "salePrice",
    "saleDate",
    "costBasis",
    "currentValue",
    "unrealizedPnL",
    "realizedPnL",
    "tax",
    "postTaxPnL",
    "inflationAdjustedPnL",
    "holdingPeriodDays",
    "holdingPeriodYears",
    "cagr",
    "isActive",
    "error",
)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def row_to_record(row: RowCalculation) -> dict[str, str]:
    return {
        "ticker": row.ticker,
        "company": row.company,
        "status": _text(row.status),
        "grantDate": _text(row.grant_date),
        "quantity": _text(row.quantity),
        "vested": _text(row.vested),
        "exercisePrice": _text(row.exercise_price),
        "priceSource": _text(row.price.kind if row.price else None),
        "priceUsed": _text(row.price.value if row.price else None),
        "salePrice": _text(row.sale_price),
        "saleDate": _text(row.sale_date),
        "costBasis": _text(row.cost_basis),
        "currentValue": _text(row.current_value),
        "unrealizedPnL": _text(row.unrealized_pnl),
        "realizedPnL": _text(row.realized_pnl),
        "tax": _text(row.tax),
        "postTaxPnL": _text(row.post_tax_pnl),
        "inflationAdjustedPnL": _text(row.inflation_adjusted_pnl),
        "holdingPeriodDays": _text(row.holding_period_days),
        "holdingPeriodYears": _text(row.holding_period_years),
        "cagr": _text(row.cagr),
        "isActive": _text(row.is_active),
        "error": _text(row.error),
    }


def _optional(value: str, parse: Callable[[str], Any]) -> Any:
    return parse(value) if value != "" else None


def record_to_row(record: dict[str, Any]) -> RowCalculation:
    values = {key: "" if record.get(key) is None else str(record.get(key)) for key in EXPORT_COLUMNS}
    price_kind = values["priceSource"]
    price = (
        PriceSource(kind=PriceKind(price_kind), value=Decimal(values["priceUsed"]))
        if price_kind
        else None
    )
    return RowCalculation(
        ticker=values["ticker"],
        company=values["company"],
        status=GrantStatus(values["status"]),
        grant_date=date.fromisoformat(values["grantDate"]),
        quantity=Decimal(values["quantity"]),
        vested=Decimal(values["vested"]),
        exercise_price=Decimal(values["exercisePrice"]),
        price=price,
        sale_price=_optional(values["salePrice"], Decimal),
        sale_date=_optional(values["saleDate"], date.fromisoformat),
        cost_basis=Decimal(values["costBasis"]),
        current_value=Decimal(values["currentValue"]),
        unrealized_pnl=Decimal(values["unrealizedPnL"]),
        realized_pnl=Decimal(values["realizedPnL"]),
        tax=Decimal(values["tax"]),
        post_tax_pnl=Decimal(values["postTaxPnL"]),
        inflation_adjusted_pnl=Decimal(values["inflationAdjustedPnL"]),
        holding_period_days=int(values["holdingPeriodDays"]),
        holding_period_years=Decimal(values["holdingPeriodYears"]),
        cagr=_optional(values["cagr"], Decimal),
        is_active=values["isActive"].lower() == "true",
        error=values["error"] or None,
    )


def export_rows(rows: Sequence[RowCalculation], fmt: ExportFormat | str = ExportFormat.CSV) -> str:
    fmt = ExportFormat(fmt)
    records = [row_to_record(row) for row in rows]
    if fmt is ExportFormat.JSON:
        return json.dumps(records, indent=2)
    frame = pd.DataFrame(records, columns=list(EXPORT_COLUMNS))
    return frame.to_csv(index=False)


def load_rows(text: str, fmt: ExportFormat | str = ExportFormat.CSV) -> list[RowCalculation]:
    fmt = ExportFormat(fmt)
    records: Iterable[dict[str, Any]]
    if fmt is ExportFormat.JSON:
        records = json.loads(text)
    else:
        if not text.strip():
            return []
        frame = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)
        records = frame.to_dict(orient="records")
    return [record_to_row(record) for record in records]


__all__ = [
    "ExportFormat",
    "EXPORT_COLUMNS",
    "row_to_record",
    "record_to_row",
    "export_rows",
    "load_rows",
]
