"""Pydantic schemas for grant validation, upload and listing."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import Field

from ..models import EsopGrant
from ..services.validator import ValidationResult
from .analytics import CamelModel


class ValidationRequest(CamelModel):
    records: list[dict[str, Any]] = Field(..., description="Raw grant records to validate")


class ValidationResultSchema(CamelModel):
    is_valid: bool
    errors: list[str]
    warnings: list[str]
    summary: dict[str, Any]

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResultSchema":
        return cls(
            is_valid=result.is_valid,
            errors=list(result.errors),
            warnings=list(result.warnings),
            summary=result.summary.as_dict(),
        )


class GrantSchema(CamelModel):
    id: int
    ticker: str
    company: str
    grant_date: date
    vesting_start_date: date
    vesting_end_date: date | None = None
    quantity: float
    vested: float
    strike_price: float
    exercise_price: float
    current_price: float | None = None
    fmv: float | None = None
    status: str
    type: str
    sale_price: float | None = None
    sale_date: date | None = None
    notes: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, grant: EsopGrant) -> "GrantSchema":
        def _opt(value: Any) -> float | None:
            return None if value is None else float(value)

        return cls(
            id=grant.id,
            ticker=grant.ticker,
            company=grant.company,
            grant_date=grant.grant_date,
            vesting_start_date=grant.vesting_start_date,
            vesting_end_date=grant.vesting_end_date,
            quantity=float(grant.quantity),
            vested=float(grant.vested),
            strike_price=float(grant.strike_price),
            exercise_price=float(grant.exercise_price),
            current_price=_opt(grant.current_price),
            fmv=_opt(grant.fmv),
            status=grant.status,
            type=grant.type,
            sale_price=_opt(grant.sale_price),
            sale_date=grant.sale_date,
            notes=grant.notes,
            created_at=grant.created_at,
        )


class GrantListResponse(CamelModel):
    grants: list[GrantSchema]
    count: int


class UploadResponse(CamelModel):
    status: str = "success"
    message: str
    stored: int
    warnings: list[str] = Field(default_factory=list)
    missing_columns: list[str] = Field(default_factory=list)
    extra_columns: list[str] = Field(default_factory=list)
    summary: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "ValidationRequest",
    "ValidationResultSchema",
    "GrantSchema",
    "GrantListResponse",
    "UploadResponse",
]
