"""Analytics endpoints over posted, uploaded or stored grant records."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.errors import NotFoundError
from ...schemas import AnalyticsEnvelope, AnalyticsRequest
from ...services import grants as grant_service
from ...services.analytics import AnalyticsEngine
from ...services.csv_upload import parse_csv
from ...services.export import ExportFormat, export_rows
from ..dependencies import InternalAuth, RequestContext, get_db_session, get_engine, get_request_context

router = APIRouter(dependencies=[InternalAuth])

_MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
}


def get_compute_options(
    as_of: date | None = Query(default=None, alias="asOf"),
    inflation_rate: Decimal | None = Query(default=None, alias="inflationRate", ge=0),
    expected_cagr: Decimal | None = Query(default=None, alias="expectedCAGR", ge=-1),
    monthly_contribution: Decimal = Query(default=Decimal("0"), alias="monthlyContribution", ge=0),
    projection_years: int | None = Query(default=None, alias="projectionYears", ge=1, le=50),
) -> dict[str, Any]:
    """Query-string counterpart of the options carried by :class:`AnalyticsRequest`."""

    return {
        "as_of": as_of,
        "inflation_rate": inflation_rate,
        "expected_cagr": expected_cagr,
        "monthly_contribution": monthly_contribution,
        "projection_years": projection_years,
    }


@router.post("/analytics", response_model=AnalyticsEnvelope)
async def compute_analytics(
    payload: AnalyticsRequest,
    engine: AnalyticsEngine = Depends(get_engine),
) -> AnalyticsEnvelope:
    report = await engine.compute(payload.records, **payload.compute_options())
    return AnalyticsEnvelope.success(report)


@router.post("/analytics/upload", response_model=AnalyticsEnvelope)
async def compute_uploaded_analytics(
    file: UploadFile = File(...),
    options: dict[str, Any] = Depends(get_compute_options),
    engine: AnalyticsEngine = Depends(get_engine),
) -> AnalyticsEnvelope:
    parsed = parse_csv(await file.read())
    report = await engine.compute(parsed.records, **options)
    return AnalyticsEnvelope.success(report.with_columns(parsed.missing_columns, parsed.extra_columns))


@router.get("/analytics", response_model=AnalyticsEnvelope)
async def stored_analytics(
    options: dict[str, Any] = Depends(get_compute_options),
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
    engine: AnalyticsEngine = Depends(get_engine),
) -> AnalyticsEnvelope:
    grants = await grant_service.list_grants(session, context.user_id)
    if not grants:
        raise NotFoundError("No ESOP grants stored for this user")
    records = grant_service.grants_to_raw_records(grants)
    report = await engine.compute(records, **options)
    return AnalyticsEnvelope.success(report)


@router.post("/analytics/export")
async def export_analytics(
    payload: AnalyticsRequest,
    fmt: ExportFormat = Query(default=ExportFormat.CSV, alias="format"),
    engine: AnalyticsEngine = Depends(get_engine),
) -> Response:
    report = await engine.compute(payload.records, **payload.compute_options())
    body = export_rows(report.rows, fmt)
    return Response(
        content=body,
        media_type=_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="esop-analytics.{fmt.value}"'},
    )
