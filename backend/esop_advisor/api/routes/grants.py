"""Grant validation, upload and storage endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...schemas import GrantListResponse, GrantSchema, UploadResponse, ValidationRequest, ValidationResultSchema
from ...services import grants as grant_service
from ...services.analytics import AnalyticsEngine
from ...services.csv_upload import parse_csv
from ...services.normalizer import normalize_all
from ...services.validator import validate
from ..dependencies import InternalAuth, RequestContext, get_db_session, get_engine, get_request_context

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[InternalAuth])


@router.post("/grants/validate", response_model=ValidationResultSchema)
async def validate_grants(payload: ValidationRequest) -> ValidationResultSchema:
    return ValidationResultSchema.from_result(validate(payload.records))


@router.post("/grants/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_grants(
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
    engine: AnalyticsEngine = Depends(get_engine),
) -> UploadResponse:
    parsed = parse_csv(await file.read())
    result = engine.check(parsed.records)
    stored = await grant_service.replace_grants(session, context.user_id, normalize_all(parsed.records))
    logger.info("Stored %d grants for user %s from %s", len(stored), context.user_id, file.filename)
    return UploadResponse(
        message=f"Successfully stored {len(stored)} ESOP grants",
        stored=len(stored),
        warnings=result.warnings,
        missing_columns=parsed.missing_columns,
        extra_columns=parsed.extra_columns,
        summary=result.summary.as_dict(),
    )


@router.get("/grants", response_model=GrantListResponse)
async def list_grants(
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
) -> GrantListResponse:
    grants = await grant_service.list_grants(session, context.user_id)
    return GrantListResponse(grants=[GrantSchema.from_model(grant) for grant in grants], count=len(grants))


@router.delete("/grants", status_code=status.HTTP_204_NO_CONTENT)
async def delete_grants(
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
) -> Response:
    removed = await grant_service.delete_grants(session, context.user_id)
    logger.info("Deleted %d grants for user %s", removed, context.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
