"""Shared FastAPI dependencies for the ESOP advisor service."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import EsopSettings
from ..core.errors import AuthenticationError
from ..db.session import Database
from ..services.analytics import AnalyticsEngine


def get_app_settings(request: Request) -> EsopSettings:
    return request.app.state.settings


def get_engine(request: Request) -> AnalyticsEngine:
    return request.app.state.engine


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    database: Database = request.app.state.database
    async for session in database.get_session():  # pragma: no cover - FastAPI dependency wrapper
        yield session


def verify_internal_token(
    request: Request,
    x_internal_token: str | None = Header(default=None),
) -> None:
    settings = get_app_settings(request)
    if settings.internal_auth_token is None:
        return
    if x_internal_token != settings.internal_auth_token:
        raise AuthenticationError("Invalid internal token")


InternalAuth = Depends(verify_internal_token)


@dataclass
class RequestContext:
    user_id: str


def get_request_context(x_user_id: str | None = Header(default=None)) -> RequestContext:
    if not x_user_id or not x_user_id.strip():
        raise AuthenticationError("Missing user context")
    return RequestContext(user_id=x_user_id.strip())


__all__ = [
    "get_app_settings",
    "get_engine",
    "get_db_session",
    "InternalAuth",
    "RequestContext",
    "get_request_context",
]
