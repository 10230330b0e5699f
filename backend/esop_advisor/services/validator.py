"""Batch validation of uploaded grant records.

Validation runs before normalization and is all-or-nothing: a single row error
rejects the batch. Warnings are informational and never block ingestion.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Sequence

from .records import (
    NUMERIC_PRECISION,
    NUMERIC_SCALE,
    TEXT_LIMITS,
    VALID_STATUSES,
    GrantStatus,
    RawRecord,
    is_missing,
    parse_date,
    parse_number,
)

REQUIRED_FIELDS = ("ticker", "company", "grantDate", "quantity", "vested", "status")
NUMERIC_FIELDS = ("quantity", "vested", "strikePrice", "exercisePrice", "currentPrice", "salePrice")

_HELD_STATUSES = {GrantStatus.VESTED.value, GrantStatus.EXERCISED.value, GrantStatus.SOLD.value}


def _column_overflow(value: Decimal) -> str | None:
    """Why ``value`` does not fit a stored numeric column, if it does not."""

    if value == 0:
        return None
    normalized = value.normalize()
    scale = max(0, -normalized.as_tuple().exponent)
    if scale > NUMERIC_SCALE:
        return f"has more than {NUMERIC_SCALE} decimal places"
    if normalized.adjusted() + 1 > NUMERIC_PRECISION - NUMERIC_SCALE:
        return f"has more than {NUMERIC_PRECISION - NUMERIC_SCALE} integer digits"
    return None


def _status(record: RawRecord) -> Any:
    status = record.get("status")
    return status.strip() if isinstance(status, str) else status


def _exercise_price_required(record: RawRecord) -> str | None:
    if _status(record) in (GrantStatus.EXERCISED.value, GrantStatus.SOLD.value):
        return "exercisePrice is REQUIRED for Exercised/Sold shares"
    return None


def _sale_price_required(record: RawRecord) -> str | None:
    if _status(record) == GrantStatus.SOLD.value:
        return "salePrice is REQUIRED for Sold shares"
    return None


CONDITIONALLY_REQUIRED: dict[str, Callable[[RawRecord], str | None]] = {
    "exercisePrice": _exercise_price_required,
    "salePrice": _sale_price_required,
}


@dataclass
class ValidationSummary:
    total_records: int = 0
    valid_records: int = 0
    invalid_records: int = 0
    status_distribution: dict[str, int] = field(default_factory=dict)
    missing_fields: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalRecords": self.total_records,
            "validRecords": self.valid_records,
            "invalidRecords": self.invalid_records,
            "statusDistribution": dict(self.status_distribution),
            "missingFields": dict(self.missing_fields),
        }


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str]
    warnings: list[str]
    summary: ValidationSummary


def validate_record(record: RawRecord, index: int) -> tuple[list[str], list[str]]:
    """Validate one record; ``index`` is zero-based and reported one-based."""

    row = f"Row {index + 1}"
    errors: list[str] = []
    warnings: list[str] = []

    for name in REQUIRED_FIELDS:
        if is_missing(record.get(name)):
            errors.append(f"{row}: Missing required field '{name}'")

    status = _status(record)
    if not is_missing(status) and status not in VALID_STATUSES:
        errors.append(f"{row}: Invalid status '{status}'. Must be one of: {', '.join(VALID_STATUSES)}")

    for name, rule in CONDITIONALLY_REQUIRED.items():
        if not is_missing(record.get(name)):
            continue
        message = rule(record)
        if message:
            errors.append(f"{row}: {message}")

    numbers = {}
    for name in NUMERIC_FIELDS:
        raw = record.get(name)
        if is_missing(raw):
            continue
        value = parse_number(raw)
        if value is None:
            errors.append(f"{row}: '{name}' must be a valid number, got '{raw}'")
        elif value < 0:
            errors.append(f"{row}: '{name}' cannot be negative")
        else:
            numbers[name] = value

    for name, value in [*numbers.items(), ("fmv", parse_number(record.get("fmv")))]:
        reason = _column_overflow(value) if value is not None else None
        if reason:
            errors.append(f"{row}: '{name}' {reason}")

    for name, limit in TEXT_LIMITS.items():
        text = record.get(name)
        if isinstance(text, str) and len(text.strip()) > limit:
            errors.append(f"{row}: '{name}' exceeds {limit} characters")

    vested = numbers.get("vested")
    quantity = numbers.get("quantity")
    if vested is not None and quantity is not None and vested > quantity:
        errors.append(f"{row}: vested ({vested}) cannot exceed quantity ({quantity})")

    if vested is not None:
        if status == GrantStatus.UNVESTED.value and vested != 0:
            warnings.append(f"{row}: Status is 'Unvested' but vested={vested}. Should be 0.")
        if status in _HELD_STATUSES and vested == 0:
            warnings.append(f"{row}: Status is '{status}' but vested=0. Suspicious.")

    grant_date = record.get("grantDate")
    if not is_missing(grant_date) and parse_date(grant_date) is None:
        errors.append(f"{row}: Invalid grantDate format '{grant_date}'")

    if is_missing(record.get("currentPrice")) and is_missing(record.get("fmv")):
        warnings.append(
            f"{row}: No currentPrice or fmv provided. "
            f"Will attempt live price lookup for '{record.get('ticker')}'."
        )

    if is_missing(record.get("exercisePrice")) and not is_missing(record.get("strikePrice")):
        warnings.append(
            f"{row}: No exercisePrice provided. Using strikePrice={record.get('strikePrice')} as fallback."
        )

    return errors, warnings


def validate(records: Sequence[RawRecord]) -> ValidationResult:
    """Validate an entire batch of raw records."""

    all_errors: list[str] = []
    all_warnings: list[str] = []
    summary = ValidationSummary(total_records=len(records))
    statuses: Counter[str] = Counter()
    missing: Counter[str] = Counter()

    if not records:
        all_errors.append("No records provided for validation")

    for index, record in enumerate(records):
        errors, warnings = validate_record(record, index)
        if errors:
            all_errors.extend(errors)
            summary.invalid_records += 1
        else:
            summary.valid_records += 1
        all_warnings.extend(warnings)

        status = _status(record)
        if not is_missing(status):
            statuses[str(status)] += 1
        for name in REQUIRED_FIELDS:
            if is_missing(record.get(name)):
                missing[name] += 1

    summary.status_distribution = dict(statuses)
    summary.missing_fields = dict(missing)
    return ValidationResult(
        is_valid=not all_errors,
        errors=all_errors,
        warnings=all_warnings,
        summary=summary,
    )


__all__ = [
    "REQUIRED_FIELDS",
    "NUMERIC_FIELDS",
    "CONDITIONALLY_REQUIRED",
    "ValidationSummary",
    "ValidationResult",
    "validate_record",
    "validate",
]
