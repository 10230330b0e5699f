"""Coerce validated raw records into :class:`NormalizedRecord` instances."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from esop_advisor.core.errors import ComputationError

from .records import GrantStatus, NormalizedRecord, RawRecord, is_missing, parse_date, parse_number

DEFAULT_GRANT_TYPE = "ESOP"


def _text(value: object) -> str:
    return "" if is_missing(value) else str(value).strip()


def normalize(record: RawRecord) -> NormalizedRecord:
    """Apply the default and fallback rules to one validated record.

    Assumes :func:`esop_advisor.services.validator.validate` accepted the
    batch, so required fields exist and parse.
    """

    grant_date = parse_date(record.get("grantDate"))
    if grant_date is None:
        ticker = _text(record.get("ticker"))
        raise ComputationError(f"Unparseable grantDate for {ticker}: {record.get('grantDate')!r}")
    strike_price = parse_number(record.get("strikePrice"))
    exercise_price = parse_number(record.get("exercisePrice"))
    if exercise_price is None:
        exercise_price = strike_price if strike_price is not None else Decimal("0")
    status = GrantStatus(_text(record.get("status")))
    sold = status is GrantStatus.SOLD
    grant_type = _text(record.get("type")) or _text(record.get("grantType")) or DEFAULT_GRANT_TYPE

    return NormalizedRecord(
        ticker=_text(record.get("ticker")).upper(),
        company=_text(record.get("company")),
        grant_date=grant_date,
        vesting_start_date=parse_date(record.get("vestingStartDate")) or grant_date,
        vesting_end_date=parse_date(record.get("vestingEndDate")),
        quantity=parse_number(record.get("quantity")) or Decimal("0"),
        vested=parse_number(record.get("vested")) or Decimal("0"),
        strike_price=strike_price or Decimal("0"),
        exercise_price=exercise_price,
        status=status,
        type=grant_type,
        current_price=parse_number(record.get("currentPrice")),
        fmv=parse_number(record.get("fmv")),
        sale_price=parse_number(record.get("salePrice")) if sold else None,
        sale_date=parse_date(record.get("saleDate")) if sold else None,
        notes=_text(record.get("notes")),
    )


def normalize_all(records: Iterable[RawRecord]) -> list[NormalizedRecord]:
    return [normalize(record) for record in records]


__all__ = ["DEFAULT_GRANT_TYPE", "normalize", "normalize_all"]
