"""Parse an uploaded grant CSV into raw records."""

from __future__ import annotations

import io
from dataclasses import dataclass, field

import pandas as pd

from esop_advisor.core.errors import ValidationError

from .records import RECOGNIZED_FIELDS
from .validator import REQUIRED_FIELDS

UPLOAD_COLUMNS = tuple(name for name in RECOGNIZED_FIELDS if name != "fmv")
OPTIONAL_ALIASES = ("fmv", "grantType")


@dataclass
class ParsedUpload:
    records: list[dict[str, str]]
    missing_columns: list[str] = field(default_factory=list)
    extra_columns: list[str] = field(default_factory=list)


def parse_csv(content: bytes | str) -> ParsedUpload:
    """Read every cell as text and report header mismatches.

    Missing required columns reject the upload. Missing optional columns and
    unrecognized columns are reported on the result; unrecognized columns are
    kept on each record.
    """

    text = content.decode("utf-8-sig") if isinstance(content, bytes) else content
    if not text.strip():
        raise ValidationError("CSV file is empty", errors=["CSV file is empty"], code="EMPTY_CSV")
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ValidationError("CSV parsing failed", errors=[str(exc)], code="CSV_PARSE_ERROR") from exc

    frame.columns = [str(column).strip() for column in frame.columns]
    columns = list(frame.columns)
    missing = [name for name in UPLOAD_COLUMNS if name not in columns]
    extra = [name for name in columns if name not in RECOGNIZED_FIELDS and name not in OPTIONAL_ALIASES]

    missing_required = [name for name in REQUIRED_FIELDS if name in missing]
    if missing_required:
        errors = [f"Missing required column '{name}'" for name in missing_required]
        raise ValidationError(
            "CSV header is missing required columns",
            errors=errors,
            code="CSV_HEADER_MISMATCH",
        )
    if frame.empty:
        raise ValidationError("CSV file has no data rows", errors=["CSV file has no data rows"], code="EMPTY_CSV")

    records = [
        {str(key): value.strip() for key, value in row.items()}
        for row in frame.to_dict(orient="records")
    ]
    return ParsedUpload(records=records, missing_columns=missing, extra_columns=extra)


__all__ = ["UPLOAD_COLUMNS", "ParsedUpload", "parse_csv"]
