"""Grant record types shared across the analytics pipeline.

Raw uploads arrive as loosely typed mappings; everything downstream of the
normalizer works on :class:`NormalizedRecord` and carries the price that was
used as an explicit :class:`PriceSource`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

RawRecord = Mapping[str, Any]

RECOGNIZED_FIELDS = (
    "ticker",
    "company",
    "grantDate",
    "vestingStartDate",
    "vestingEndDate",
    "quantity",
    "vested",
    "strikePrice",
    "exercisePrice",
    "currentPrice",
    "fmv",
    "status",
    "type",
    "salePrice",
    "saleDate",
    "notes",
)

# Limits of the stored esop_grant columns
NUMERIC_PRECISION = 38
NUMERIC_SCALE = 12
TEXT_LIMITS = {"ticker": 32, "company": 255, "type": 32, "grantType": 32, "notes": 1024}

_DATE_FORMATS = ("%Y/%m/%d", "%m/%d/%Y", "%d %b %Y", "%b %d, %Y", "%d-%b-%Y")


class GrantStatus(str, Enum):
    UNVESTED = "Unvested"
    VESTED = "Vested"
    EXERCISED = "Exercised"
    SOLD = "Sold"
    EXPIRED = "Expired"
    LAPSED = "Lapsed"


VALID_STATUSES = tuple(status.value for status in GrantStatus)


class PriceKind(str, Enum):
    LIVE = "live"
    CSV = "csv"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class PriceSource:
    """The price a figure was computed from and where it came from."""

    kind: PriceKind
    value: Decimal


@dataclass(frozen=True)
class NormalizedRecord:
    ticker: str
    company: str
    grant_date: date
    vesting_start_date: date
    vesting_end_date: date | None
    quantity: Decimal
    vested: Decimal
    strike_price: Decimal
    exercise_price: Decimal
    status: GrantStatus
    type: str = "ESOP"
    current_price: Decimal | None = None
    fmv: Decimal | None = None
    sale_price: Decimal | None = None
    sale_date: date | None = None
    notes: str = ""

    @property
    def has_csv_price(self) -> bool:
        return self.current_price is not None or self.fmv is not None


def is_missing(value: Any) -> bool:
    """Return ``True`` for absent, ``None`` or blank values."""

    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def parse_number(value: Any) -> Decimal | None:
    """Parse an uploaded numeric cell, returning ``None`` when it is not a finite number."""

    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    if not number.is_finite():
        return None
    return number


def parse_date(value: Any) -> date | None:
    """Parse an ISO or common calendar date, returning ``None`` when unparseable."""

    if is_missing(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


__all__ = [
    "RawRecord",
    "RECOGNIZED_FIELDS",
    "NUMERIC_PRECISION",
    "NUMERIC_SCALE",
    "TEXT_LIMITS",
    "GrantStatus",
    "VALID_STATUSES",
    "PriceKind",
    "PriceSource",
    "NormalizedRecord",
    "is_missing",
    "parse_number",
    "parse_date",
]
